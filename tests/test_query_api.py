from datetime import datetime, timezone
from typing import List, Optional

import pytest
import requests
from pydantic import BaseModel, Field

from conftest import DATA_PREFIX, DOMAIN, INSTANCE_URL, FakeResponse, token_body
from salesforce_client.api.auth_api import AuthAPI, RefreshError, ValidationError
from salesforce_client.api.query_api import QueryAPI
from salesforce_client.models import ClientCredentialsGrant, GrantType, Session
from salesforce_client.utils.decoder import DecodeError
from salesforce_client.utils.http_client import HttpClient, SessionExpiredError, TransportError

QUERY = "SELECT Id, Name FROM Account"
FIRST_PAGE = "/query/?q=SELECT+Id%2C+Name+FROM+Account"


class Account(BaseModel):
    id: str = Field(alias="Id")
    name: str = Field(alias="Name")
    created_date: Optional[datetime] = Field(default=None, alias="CreatedDate")


def page(names, done, next_url=None):
    body = {
        "totalSize": len(names),
        "done": done,
        "records": [
            {"attributes": {"type": "Account"}, "Id": f"001{name}", "Name": name}
            for name in names
        ],
    }
    if next_url is not None:
        body["nextRecordsUrl"] = next_url
    return FakeResponse(200, body)


@pytest.fixture
def http_client(fake_http):
    with HttpClient(session=Session(access_token="T", instance_url=INSTANCE_URL)) as client:
        yield client


def test_perform_query_follows_every_page(fake_http, http_client):
    fake_http.add("GET", FIRST_PAGE, page(["a", "b"], False, "/services/data/v63.0/query/01g-2000"))
    fake_http.add("GET", "/query/01g-2000", page(["c", "d"], False, "/services/data/v63.0/query/01g-4000"))
    fake_http.add("GET", "/query/01g-4000", page(["e"], True))

    result = QueryAPI(http_client).perform_query(QUERY, List[Account])

    assert result.total_size == 5
    assert result.done is True
    assert [account.name for account in result.records] == ["a", "b", "c", "d", "e"]
    assert [call["url"] for call in fake_http.calls] == [
        DATA_PREFIX + FIRST_PAGE,
        DATA_PREFIX + "/query/01g-2000",
        DATA_PREFIX + "/query/01g-4000",
    ]
    assert all(call["headers"] == {"Authorization": "Bearer T"} for call in fake_http.calls)


def test_perform_query_returns_nothing_when_a_later_page_fails(fake_http, http_client):
    fake_http.add("GET", FIRST_PAGE, page(["a", "b"], False, "/services/data/v63.0/query/01g-2000"))
    fake_http.add("GET", "/query/01g-2000", requests.ConnectionError("reset"))

    with pytest.raises(TransportError):
        QueryAPI(http_client).perform_query(QUERY, List[Account])


def test_perform_query_surfaces_error_status(fake_http, http_client):
    fake_http.add("GET", FIRST_PAGE, FakeResponse(400, text='[{"errorCode": "MALFORMED_QUERY"}]'))

    with pytest.raises(TransportError, match="MALFORMED_QUERY"):
        QueryAPI(http_client).perform_query(QUERY, List[Account])


def test_perform_query_rejects_malformed_page(fake_http, http_client):
    fake_http.add("GET", FIRST_PAGE, FakeResponse(200, text="{not json"))

    with pytest.raises(DecodeError):
        QueryAPI(http_client).perform_query(QUERY, List[Account])


def test_perform_query_rejects_unfinished_page_without_continuation(fake_http, http_client):
    fake_http.add("GET", FIRST_PAGE, page(["a"], False))

    with pytest.raises(DecodeError):
        QueryAPI(http_client).perform_query(QUERY, List[Account])
    assert len(fake_http.calls) == 1


def test_perform_query_propagates_decode_failure(fake_http, http_client):
    fake_http.add("GET", FIRST_PAGE, FakeResponse(200, {"totalSize": 1, "done": True, "records": [{"Id": 1, "Name": "a"}]}))

    with pytest.raises(DecodeError):
        QueryAPI(http_client).perform_query(QUERY, List[Account])


def test_perform_query_decodes_timestamps(fake_http, http_client):
    body = {
        "totalSize": 1,
        "done": True,
        "records": [{"Id": "001a", "Name": "a", "CreatedDate": "2024-01-02T03:04:05.000+0000"}],
    }
    fake_http.add("GET", FIRST_PAGE, FakeResponse(200, body))

    result = QueryAPI(http_client).perform_query(QUERY, List[Account])

    assert result.records[0].created_date == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_perform_query_requires_a_session(fake_http):
    with HttpClient() as client:
        with pytest.raises(ValidationError):
            QueryAPI(client).perform_query(QUERY, List[Account])
        with HttpClient(session=Session(instance_url=INSTANCE_URL)) as empty:
            with pytest.raises(ValidationError):
                QueryAPI(empty).perform_query(QUERY, List[Account])
    assert fake_http.calls == []


def test_expired_session_is_refreshed_once_and_replayed(fake_http):
    fake_http.add("GET", FIRST_PAGE, FakeResponse(401, text="expired"))
    fake_http.add("POST", "/services/oauth2/token", FakeResponse(200, token_body("T2")))
    fake_http.add("GET", FIRST_PAGE, page(["a"], True))
    session = Session(
        access_token="T1",
        instance_url=INSTANCE_URL,
        grant_type=GrantType.CLIENT_CREDENTIALS,
        credentials=ClientCredentialsGrant(domain=DOMAIN, consumer_key="key", consumer_secret="secret"),
    )

    with HttpClient(session=session) as client:
        client.refresher = AuthAPI(client).refresh_session
        result = QueryAPI(client).perform_query(QUERY, List[Account])

        assert client.session.access_token == "T2"

    assert result.total_size == 1
    assert [call["method"] for call in fake_http.calls] == ["GET", "POST", "GET"]
    assert fake_http.calls[2]["headers"] == {"Authorization": "Bearer T2"}


def test_expired_session_without_refresher_raises(fake_http, http_client):
    fake_http.add("GET", FIRST_PAGE, FakeResponse(401, text="expired"))

    with pytest.raises(SessionExpiredError):
        QueryAPI(http_client).perform_query(QUERY, List[Account])


def test_expired_injected_token_cannot_be_refreshed(fake_http, http_client):
    fake_http.add("GET", FIRST_PAGE, FakeResponse(401, text="expired"))
    http_client.refresher = AuthAPI(http_client).refresh_session

    with pytest.raises(RefreshError):
        QueryAPI(http_client).perform_query(QUERY, List[Account])
    assert len(fake_http.calls) == 1
