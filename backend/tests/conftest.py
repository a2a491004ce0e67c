# 共享 fixture：内存 sqlite 会话、假图片下载器、配置覆盖、种子数据

from __future__ import annotations
from typing import Any, Callable, Iterable, List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from product_importer.catalog.product import Product, build_product
from product_importer.core.config import settings
from product_importer.db.base import Base
from product_importer.db.model import Attachment
from product_importer.integrations.media import MediaFetchError
from product_importer.repository import attachment_repo, product_repo, taxonomy_repo
from product_importer.services.importer import ProductImporter
from product_importer.utils.text import filename_from_url



class FakeDownloader:
    """Stands in for ImageDownloader: records calls and registers an attachment row."""

    def __init__(self, mime_type: str = "image/jpeg", fail: bool = False) -> None:
        self.mime_type = mime_type
        self.fail = fail
        self.calls: List[str] = []

    def fetch_and_store(self, db: Session, url: str, parent_id: int = 0) -> Attachment:
        self.calls.append(url)
        if self.fail:
            raise MediaFetchError(f"Error getting remote image {url}. Error: HTTP 404")
        return attachment_repo.create_attachment(
            db,
            file=f"2024/01/{filename_from_url(url) or 'image.jpg'}",
            mime_type=self.mime_type,
            parent_id=parent_id,
        )



@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def db(engine) -> Iterable[Session]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def downloader_factory() -> Callable[..., FakeDownloader]:
    return FakeDownloader


@pytest.fixture
def make_importer(db: Session, downloader: FakeDownloader) -> Callable[..., ProductImporter]:
    def _make(**kwargs: Any) -> ProductImporter:
        kwargs.setdefault("downloader", downloader)
        kwargs.setdefault("manage_stock", True)
        return ProductImporter(db, **kwargs)
    return _make


@pytest.fixture
def importer(make_importer) -> ProductImporter:
    return make_importer()


@pytest.fixture
def store_settings(monkeypatch) -> Callable[..., None]:
    """Temporarily override Settings fields: store_settings(STORE_MANAGE_STOCK=False)."""
    def _set(**overrides: Any) -> None:
        for key, value in overrides.items():
            monkeypatch.setattr(settings, key, value)
    return _set



# ---------- 种子数据 ----------
@pytest.fixture
def seed_product(db: Session) -> Callable[..., Product]:
    def _seed(product_type: str = "simple", **fields: Any) -> Product:
        fields.setdefault("status", "publish")
        return product_repo.save_product(db, build_product(product_type, **fields))
    return _seed


@pytest.fixture
def seed_color_taxonomy(db: Session) -> str:
    """Global "Color" attribute with Red / Blue terms; returns the taxonomy name."""
    tax = taxonomy_repo.create_attribute_taxonomy(db, "Color")
    taxonomy_repo.create_term(db, tax.name, "Red")
    taxonomy_repo.create_term(db, tax.name, "Blue")
    return tax.name
