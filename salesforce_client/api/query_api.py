"""API client that runs SOQL queries and follows result pagination."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote_plus

import pydantic

from ..models import QueryPage, QueryResult
from ..utils.decoder import DecodeError, RecordDecoder
from ..utils.http_client import HttpClient
from .auth_api import validate_auth

QUERY_PATH = "/query/?q="


class QueryAPI:
    """Fetches every page of a query and decodes the records."""

    def __init__(self, http_client: HttpClient, decoder: RecordDecoder | None = None) -> None:
        self._client = http_client
        self._decoder = decoder or RecordDecoder()

    def perform_query(self, soql: str, target: Any) -> QueryResult:
        """Runs ``soql`` and decodes all records into ``target``.

        ``target`` is a pydantic model class or ``List[Model]``. Any failure
        discards the pages fetched so far.
        """

        validate_auth(self._client.session)
        accumulator = QueryResult(next_records_url=QUERY_PATH + quote_plus(soql))

        while not accumulator.done:
            response = self._client.request_api("GET", accumulator.next_records_url)
            try:
                page = QueryPage.model_validate_json(response.content)
            except pydantic.ValidationError as exc:
                raise DecodeError(f"malformed query page: {exc}") from exc

            accumulator.total_size += page.total_size
            accumulator.records.extend(page.records)
            accumulator.done = page.done
            if not page.done:
                if not page.next_records_url:
                    raise DecodeError("query page is not done but has no nextRecordsUrl")
                accumulator.next_records_url = self._strip_version_prefix(page.next_records_url)
            logging.debug("Fetched query page with %s records (done=%s)", len(page.records), page.done)

        records = self._decoder.decode(accumulator.records, target)
        return QueryResult(total_size=accumulator.total_size, done=True, records=records)

    def _strip_version_prefix(self, next_records_url: str) -> str:
        prefix = self._client.api_prefix
        if next_records_url.startswith(prefix):
            return next_records_url[len(prefix):]
        return next_records_url
