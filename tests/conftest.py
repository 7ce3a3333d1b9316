import json
from pathlib import Path
import time
from typing import Iterable, Optional

import pytest

from linkgraph.services.config import AppConfig
from linkgraph.services.database import DatabaseService
from linkgraph.services.enrichment import EnrichmentRegistry
from linkgraph.services.link_graph import LinkGraphService


class Corpus:
    """Writes rows straight into a link index for tests."""

    def __init__(self, db_service: DatabaseService):
        self.db_service = db_service

    def _insert(self, sql: str, params: Iterable) -> int:
        conn = self.db_service.connect()
        try:
            with conn:
                cursor = conn.execute(sql, tuple(params))
            return cursor.lastrowid
        finally:
            conn.close()

    def add_file(
        self,
        path: str,
        file_type: str = "org",
        mtime: Optional[float] = None,
        project_id: Optional[int] = None,
    ) -> int:
        return self._insert(
            "INSERT INTO files (path, file_type, mtime, project_id) VALUES (?, ?, ?, ?)",
            (path, file_type, time.time() if mtime is None else mtime, project_id),
        )

    def add_heading(
        self,
        file_path: str,
        title: str = "Heading",
        todo_state: Optional[str] = None,
        priority: Optional[str] = None,
        tags: Iterable[str] = (),
        properties: Optional[dict] = None,
        scheduled: Optional[str] = None,
        deadline: Optional[str] = None,
    ) -> int:
        return self._insert(
            """
            INSERT INTO headings
                (file_path, title, todo_state, priority, tags, properties, scheduled, deadline)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                file_path,
                title,
                todo_state,
                priority,
                json.dumps(list(tags)),
                json.dumps(properties or {}),
                scheduled,
                deadline,
            ),
        )

    def add_link(
        self,
        source: str,
        target: str,
        link_type: str = "file",
        heading_id: Optional[int] = None,
    ) -> int:
        return self._insert(
            "INSERT INTO links (file_path, link_type, target, heading_id) VALUES (?, ?, ?, ?)",
            (source, link_type, target, heading_id),
        )


@pytest.fixture()
def db_service(tmp_path: Path) -> DatabaseService:
    service = DatabaseService(tmp_path / "index.db")
    service.initialize()
    return service


@pytest.fixture()
def corpus(db_service: DatabaseService) -> Corpus:
    return Corpus(db_service)


@pytest.fixture()
def store(db_service: DatabaseService):
    graph_store = db_service.open_store()
    yield graph_store
    graph_store.close()


@pytest.fixture()
def app_config(db_service: DatabaseService) -> AppConfig:
    return AppConfig(database_path=db_service.db_path, enable_builtin_providers=False)


@pytest.fixture()
def registry() -> EnrichmentRegistry:
    return EnrichmentRegistry()


@pytest.fixture()
def graph_service(db_service, registry, app_config) -> LinkGraphService:
    return LinkGraphService(db_service=db_service, registry=registry, config=app_config)

