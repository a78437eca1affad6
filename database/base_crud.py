"""通用 CRUD 基类。

为各仓库提供通用的会话获取、按ID查询、条件查询、计数与更新能力。
所有方法都接受可选的外部会话：传入时在该会话（事务）内执行且不提交，
未传入时自行开启会话并在写操作后提交。
"""
from typing import Any, Dict, List, Optional, Type, TypeVar
from sqlalchemy import func
from sqlalchemy.orm import Session

from .connection import DatabaseConnection
from .models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD:
    """通用 CRUD 基类。

    Attributes:
        conn: 数据库连接管理器。
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        self.conn = conn

    def _get_session(self) -> Session:
        """获取一个新的数据库会话。"""
        return self.conn.get_session()

    def get_by_id(self, model: Type[ModelT], record_id: int,
                  session: Optional[Session] = None) -> Optional[ModelT]:
        """按主键查询记录。

        Args:
            model: ORM 模型类。
            record_id: 主键ID。
            session: 外部会话（可选）。

        Returns:
            记录对象，不存在返回 None。
        """
        if session:
            return session.get(model, record_id)

        with self._get_session() as sess:
            return sess.get(model, record_id)

    def get_all(self, model: Type[ModelT],
                filters: Optional[Dict[str, Any]] = None,
                session: Optional[Session] = None) -> List[ModelT]:
        """按等值条件查询所有记录。

        Args:
            model: ORM 模型类。
            filters: 字段名到取值的等值过滤条件（可选）。
            session: 外部会话（可选）。

        Returns:
            记录列表，按主键升序。
        """
        def _query(sess):
            query = sess.query(model)
            if filters:
                query = query.filter_by(**filters)
            return query.order_by(model.id).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def count(self, model: Type[ModelT],
              filters: Optional[Dict[str, Any]] = None,
              session: Optional[Session] = None) -> int:
        """按等值条件计数。

        Args:
            model: ORM 模型类。
            filters: 等值过滤条件（可选）。
            session: 外部会话（可选）。

        Returns:
            匹配的记录数。
        """
        def _query(sess):
            query = sess.query(func.count(model.id))
            if filters:
                query = query.filter_by(**filters)
            return query.scalar() or 0

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def create(self, record: ModelT,
               session: Optional[Session] = None) -> ModelT:
        """插入一条记录。

        Args:
            record: 待插入的 ORM 对象。
            session: 外部会话（可选），传入时只 flush 不提交。

        Returns:
            已分配主键的记录对象。
        """
        if session:
            session.add(record)
            session.flush()
            return record

        with self._get_session() as sess:
            sess.add(record)
            sess.commit()
            sess.refresh(record)
            return record

    def update_by_id(self, model: Type[ModelT], record_id: int,
                     session: Optional[Session] = None,
                     **values: Any) -> Optional[ModelT]:
        """按主键更新字段。

        Args:
            model: ORM 模型类。
            record_id: 主键ID。
            session: 外部会话（可选）。
            **values: 待更新的字段及取值。

        Returns:
            更新后的记录对象，不存在返回 None。
        """
        def _do(sess):
            record = sess.get(model, record_id)
            if record is None:
                return None
            for key, value in values.items():
                setattr(record, key, value)
            sess.flush()
            return record

        if session:
            return _do(session)

        with self._get_session() as sess:
            record = _do(sess)
            sess.commit()
            return record
