"""数据库模块。

对外只暴露统一门面 DatabaseManager 与连接管理器。
"""
from .connection import DatabaseConnection
from .manager import DatabaseManager

__all__ = ["DatabaseConnection", "DatabaseManager"]
