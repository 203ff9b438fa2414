"""
HEMIS registry API client.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from dogerek.core.config import settings
from dogerek.integrations.hemis.errors import HemisAPIError, HemisErrorCategory


logger = logging.getLogger(__name__)


@dataclass
class HemisPage:
    """One page of the registry's student list."""
    page: int
    items: List[Dict[str, Any]]
    total_count: int
    page_count: int


class HemisClient:
    """Reads the student list from HEMIS page by page.

    Use as an async context manager; the HTTP session lives for the duration
    of the block so a whole sync run reuses one connection pool.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout: Optional[int] = None
    ):
        self.base_url = (base_url or settings.HEMIS_API_URL).rstrip('/')
        self.token = token if token is not None else settings.HEMIS_TOKEN
        self.page_size = page_size or settings.HEMIS_PAGE_SIZE
        self.timeout = timeout or settings.HEMIS_TIMEOUT
        self._http_session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        self._http_session = aiohttp.ClientSession(
            timeout=timeout,
            headers={
                'User-Agent': 'Dogerek/1.0',
                'Accept': 'application/json',
            }
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    @property
    def student_list_url(self) -> str:
        return f"{self.base_url}/data/student-list"

    async def fetch_page(self, page: int) -> HemisPage:
        """
        Fetch one page of the student list.

        Args:
            page: 1-based page number

        Returns:
            The page's raw items and pagination metadata

        Raises:
            HemisAPIError: on any network, HTTP or payload problem
        """
        if not self._http_session:
            raise RuntimeError("HTTP session not initialized")

        params = {'limit': self.page_size, 'page': page}
        headers = {'Authorization': f"Bearer {self.token}"}

        try:
            async with self._http_session.get(
                self.student_list_url,
                params=params,
                headers=headers
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise HemisAPIError(
                        f"API request failed: {response.status} - {error_text[:200]}",
                        page=page,
                        status=response.status
                    )
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    raise HemisAPIError(
                        f"Response is not valid JSON: {e}",
                        page=page,
                        status=response.status,
                        category=HemisErrorCategory.DATA_VALIDATION
                    )

        except asyncio.TimeoutError:
            raise HemisAPIError(
                f"Request timed out after {self.timeout}s",
                page=page,
                category=HemisErrorCategory.TIMEOUT
            )
        except aiohttp.ClientError as e:
            raise HemisAPIError(
                f"HTTP client error: {e}",
                page=page,
                category=HemisErrorCategory.NETWORK
            )

        return parse_student_page(page, payload)


def parse_student_page(page: int, payload: Any) -> HemisPage:
    """Validate a student-list response body and pull out items and pagination."""
    if not isinstance(payload, dict) or not payload.get('success'):
        raise HemisAPIError(
            "Registry reported failure or returned an unexpected body",
            page=page,
            category=HemisErrorCategory.DATA_VALIDATION
        )

    data = payload.get('data')
    if not isinstance(data, dict):
        raise HemisAPIError("Response has no data section", page=page,
                            category=HemisErrorCategory.DATA_VALIDATION)

    items = data.get('items')
    pagination = data.get('pagination')
    if not isinstance(items, list) or not isinstance(pagination, dict):
        raise HemisAPIError("Response is missing items or pagination", page=page,
                            category=HemisErrorCategory.DATA_VALIDATION)

    bad_items = [index for index, item in enumerate(items) if not isinstance(item, dict)]
    if bad_items:
        raise HemisAPIError(
            f"Response has non-object student items at positions {bad_items[:10]}",
            page=page,
            category=HemisErrorCategory.DATA_VALIDATION
        )

    try:
        total_count = int(pagination.get('totalCount', 0))
        page_count = int(pagination.get('pageCount', 0))
    except (TypeError, ValueError):
        raise HemisAPIError("Pagination metadata is not numeric", page=page,
                            category=HemisErrorCategory.DATA_VALIDATION)

    return HemisPage(
        page=page,
        items=items,
        total_count=total_count,
        page_count=page_count
    )
