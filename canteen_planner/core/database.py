"""
数据库连接和管理模块
封装 DuckDB 连接、表结构初始化与基础查询接口
"""

import json
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import duckdb

from .exceptions import DatabaseError
from ..config.settings import settings

MEMORY_DB = ":memory:"

# 完整的表结构定义
SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS canteens (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  with_air_conditioning BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE TABLE IF NOT EXISTS stores (
  id TEXT PRIMARY KEY,
  canteen_id TEXT NOT NULL,
  name TEXT NOT NULL,
  description TEXT
);

CREATE INDEX IF NOT EXISTS idx_stores_canteen ON stores(canteen_id);

CREATE TABLE IF NOT EXISTS opening_hours (
  store_id TEXT NOT NULL,
  day_of_week TEXT CHECK(day_of_week IN ('MONDAY','TUESDAY','WEDNESDAY','THURSDAY','FRIDAY','SATURDAY','SUNDAY')) NOT NULL,
  start_time TEXT NOT NULL,
  end_time TEXT NOT NULL,
  PRIMARY KEY (store_id, day_of_week)
);

CREATE SEQUENCE IF NOT EXISTS menu_items_id_seq;
CREATE TABLE IF NOT EXISTS menu_items (
  item_id INTEGER DEFAULT nextval('menu_items_id_seq') PRIMARY KEY,
  store_id TEXT NOT NULL,
  position INTEGER NOT NULL,
  name TEXT NOT NULL,
  category TEXT CHECK(category IN ('FOOD','DRINK')) NOT NULL,
  sub_category TEXT,
  price DOUBLE NOT NULL CHECK(price >= 0)
);

CREATE INDEX IF NOT EXISTS idx_menu_items_store ON menu_items(store_id);

CREATE TABLE IF NOT EXISTS store_ratings (
  store_id TEXT NOT NULL,
  client_fingerprint TEXT NOT NULL,
  rating DOUBLE NOT NULL,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now(),
  PRIMARY KEY (store_id, client_fingerprint)
);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  action TEXT,
  detail_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


class DatabaseManager:
    """数据库管理器，封装所有数据库操作"""

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = db_path or self._get_db_path_from_settings()

    def _get_db_path_from_settings(self) -> str:
        """从设置中获取数据库路径"""
        db_url = settings.database_url
        if db_url.startswith("duckdb://"):
            db_url = db_url.replace("duckdb://", "", 1)
        if db_url in (MEMORY_DB, "/" + MEMORY_DB):
            return MEMORY_DB
        return db_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接"""
        with self._lock:
            if self._connection is None:
                if self.db_path != MEMORY_DB:
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                try:
                    self._connection = duckdb.connect(self.db_path)
                except duckdb.Error as e:
                    raise DatabaseError(f"Failed to connect database: {e}")
                self._init_schema()
            return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接"""
        return self.connection

    def _init_schema(self):
        """初始化数据库表结构"""
        try:
            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    def init_database(self):
        """初始化数据库（连接即建表）"""
        self.get_connection()

    def close(self):
        """关闭连接"""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        数据库事务上下文管理器

        同一管理器上的事务串行执行；出错时回滚并统一抛出 DatabaseError
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                conn.execute("ROLLBACK")
                if isinstance(e, DatabaseError):
                    raise
                if isinstance(e, duckdb.Error):
                    raise DatabaseError(f"数据库操作失败: {str(e)}")
                raise

    def execute_query(self, query: str, params: list = None) -> list:
        """执行查询并返回结果"""
        with self._lock:
            try:
                con = self.get_connection()
                if params:
                    return con.execute(query, params).fetchall()
                return con.execute(query).fetchall()
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}")

    def execute_one(self, query: str, params: list = None) -> Optional[tuple]:
        """执行查询并返回单条结果"""
        with self._lock:
            try:
                con = self.get_connection()
                if params:
                    return con.execute(query, params).fetchone()
                return con.execute(query).fetchone()
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}")

    def fetch_dicts(self, query: str, params: list = None) -> List[Dict[str, Any]]:
        """执行查询并以字典列表返回（键为列名）"""
        with self._lock:
            try:
                con = self.get_connection()
                cursor = con.execute(query, params or [])
                columns = [col[0] for col in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}")

    def log_action(self, action: str, details: Dict[str, Any], conn=None):
        """记录操作日志"""
        query = "INSERT INTO logs (action, detail_json, created_at) VALUES (?, ?, ?)"
        params = [action, json.dumps(details, ensure_ascii=False, default=str),
                  datetime.now().isoformat()]
        if conn is not None:
            conn.execute(query, params)
            return
        self.execute_query(query, params)


# 全局数据库管理器实例
db_manager = DatabaseManager()


def get_db_manager() -> DatabaseManager:
    """FastAPI 依赖：返回全局数据库管理器"""
    return db_manager
