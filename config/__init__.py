"""配置模块。"""
