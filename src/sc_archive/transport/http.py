"""httpx-backed page transport for the remote collection API."""

from __future__ import annotations

import logging

import httpx

from sc_archive.auth import CredentialContext
from sc_archive.errors import DecodeError
from sc_archive.models import PageRequest

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-v2.soundcloud.com/"
ME_ENDPOINT = "me"


class HttpPageFetcher:
    """Issue one GET per page request.

    The first request of a crawl goes to the endpoint with paging parameters.
    Follow-up requests echo the server's cursor untouched: by default the
    cursor is the next-page URL and is requested verbatim with only the client
    id merged into its query; when ``cursor_param`` is set it is attached under
    that query parameter instead. Cursor URLs naming a host other than the
    API's are refused so the credentials never leave it.

    Network failures are raised as httpx exceptions and non-2xx responses are
    returned as-is; classifying both is the retry policy's job.
    """

    USER_AGENT = "sc-archive/0.1"

    def __init__(
        self,
        credential: CredentialContext,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        cursor_param: str | None = None,
        client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.credential = credential
        self.cursor_param = cursor_param
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={"User-Agent": self.USER_AGENT, "Accept": "application/json"},
        )

    def fetch(self, request: PageRequest) -> httpx.Response:
        logger.debug(f"GET {request.endpoint} (cursor={'yes' if request.cursor else 'no'})")
        if request.cursor is not None and not self.cursor_param:
            return self._client.get(self._cursor_url(request.cursor), headers=self.credential.headers())

        params: dict[str, str] = dict(self.credential.query_params())
        params["limit"] = str(request.page_size)
        params["linked_partitioning"] = "1"
        if request.cursor is not None:
            params[self.cursor_param] = request.cursor
        return self._client.get(request.endpoint, params=params, headers=self.credential.headers())

    def fetch_detail(self, endpoint: str) -> httpx.Response:
        """Fetch a single resource such as ``playlists/{id}``."""
        logger.debug(f"GET {endpoint}")
        return self._client.get(
            endpoint,
            params=self.credential.query_params(),
            headers=self.credential.headers(),
        )

    def fetch_me(self) -> httpx.Response:
        """Fetch the authenticated user's profile."""
        return self.fetch_detail(ME_ENDPOINT)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpPageFetcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _cursor_url(self, cursor: str) -> httpx.URL:
        # Passing params= to get() would replace the cursor's own query string.
        url = httpx.URL(cursor)
        api_host = self._client.base_url.host
        if url.is_absolute_url and api_host and url.host != api_host:
            raise DecodeError(f"Refusing to follow cursor to foreign host '{url.host}'.")
        return url.copy_merge_params(self.credential.query_params())
