"""
Shared fixtures: a throwaway SQLite database and a scripted HEMIS registry.
"""

from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dogerek.core.database import Base, build_engine
from dogerek.integrations.hemis.client import HemisPage, parse_student_page
from dogerek.integrations.hemis.errors import HemisAPIError
import dogerek.models  # noqa: F401


def make_item(
    number: int,
    faculty: Optional[Dict[str, Any]] = None,
    group: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Build a HEMIS student item the way the registry returns it."""
    return {
        "id": 10000 + number,
        "meta_id": 20000 + number,
        "student_id_number": f"3{number:011d}",
        "full_name": f"Student {number:05d}",
        "short_name": f"S. {number:05d}",
        "first_name": "Student",
        "second_name": f"{number:05d}",
        "third_name": None,
        "gender": {"code": "11", "name": "Erkak"},
        "birth_date": 946684800,
        "image": None,
        "email": None,
        "department": faculty,
        "specialty": {"id": 1, "code": "60610100", "name": "Informatika"},
        "group": group,
        "level": {"code": "11", "name": "1-kurs"},
        "semester": {"id": 1, "code": "11", "name": "1-semestr"},
        "educationYear": {"code": "2024", "name": "2024-2025", "current": True},
        "educationType": {"code": "11", "name": "Bakalavr"},
        "educationForm": {"code": "11", "name": "Kunduzgi"},
        "paymentForm": {"code": "11", "name": "Davlat granti"},
        "year_of_enter": 2024,
        "studentStatus": {"code": "11", "name": "O'qimoqda"},
    }


FACULTY = {"id": 1, "name": "Fizika-matematika", "code": "FM", "structureType": {"code": "11", "name": "Fakultet"}}
GROUP = {"id": 101, "name": "FM-101", "educationLang": {"code": "11", "name": "O'zbek"}}


class FakeHemisClient:
    """Serves pre-built pages; ``failures[page]`` attempts on a page fail first."""

    def __init__(self, pages: List[List[Dict[str, Any]]], failures: Optional[Dict[int, int]] = None):
        self.pages = pages
        self.failures = dict(failures or {})
        self.calls: List[int] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    @property
    def total_count(self) -> int:
        return sum(len(page) for page in self.pages)

    def attempts_for(self, page: int) -> int:
        return self.calls.count(page)

    async def fetch_page(self, page: int) -> HemisPage:
        self.calls.append(page)
        if self.failures.get(page, 0) > 0:
            self.failures[page] -= 1
            raise HemisAPIError("API request failed: 502 - Bad Gateway", page=page, status=502)
        payload = {
            "success": True,
            "error": None,
            "data": {
                "items": self.pages[page - 1],
                "pagination": {
                    "totalCount": self.total_count,
                    "pageCount": len(self.pages),
                    "page": page,
                },
            },
        }
        return parse_student_page(page, payload)


def build_pages(page_count: int, page_size: int = 3) -> List[List[Dict[str, Any]]]:
    pages = []
    number = 0
    for _ in range(page_count):
        page = []
        for _ in range(page_size):
            number += 1
            page.append(make_item(number, faculty=FACULTY, group=GROUP))
        pages.append(page)
    return pages


@pytest.fixture
def no_sleep():
    """Stand-in for asyncio.sleep that records requested delays."""
    return AsyncMock()


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so each session gets its own connection
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'dogerek_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def student_item():
    return make_item


@pytest.fixture
def registry_pages():
    return build_pages


@pytest.fixture
def fake_registry():
    """Factory for a FakeHemisClient over the given pages and failure plan."""
    return FakeHemisClient
