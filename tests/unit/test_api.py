"""Tests for sfinspect.api module."""

import os
from unittest.mock import patch
from urllib.parse import unquote

import pytest
import requests

from sfinspect.api import SalesforceAPI, SFConfig, build_record_query
from sfinspect.exceptions import (
    MetadataFetchError,
    QueryError,
    RecordNotFound,
    TransportError,
    UpstreamStatusError,
)
from sfinspect.metadata_cache import MetadataCache
from sfinspect.models import ObjectMetadata

ACCOUNT_DESCRIBE = {
    "name": "Account",
    "label": "Account",
    "labelPlural": "Accounts",
    "keyPrefix": "001",
    "queryable": True,
    "fields": [
        {"name": "Id", "type": "id"},
        {"name": "Name", "type": "string"},
        {"name": "Score__c", "type": "double", "calculated": True},
        {"name": "CreatedDate", "type": "datetime"},
        {"name": "OwnerId", "type": "reference", "referenceTo": ["User"]},
    ],
}


class TestSFConfig:
    """Tests for SFConfig dataclass."""

    def test_default_values(self):
        cfg = SFConfig()

        assert cfg.api_version == "v58.0"
        assert cfg.bulk_poll_interval == 5.0
        assert cfg.bulk_max_polls == 60
        assert cfg.metadata_ttl == 600.0
        assert cfg.connection() is None

    def test_from_env(self):
        env = {
            "SF_API_VERSION": "v60.0",
            "SF_ACCESS_TOKEN": "tok",
            "SF_INSTANCE_URL": "https://myorg.my.salesforce.com",
            "SF_BULK_POLL_INTERVAL": "2.5",
            "SF_BULK_MAX_POLLS": "10",
            "SF_METADATA_TTL": "30",
        }

        with patch.dict(os.environ, env, clear=False):
            cfg = SFConfig.from_env()

        assert cfg.api_version == "v60.0"
        assert cfg.bulk_poll_interval == 2.5
        assert cfg.bulk_max_polls == 10
        assert cfg.metadata_ttl == 30.0
        conn = cfg.connection()
        assert conn.access_token == "tok"
        assert conn.instance_url == "https://myorg.my.salesforce.com"

    def test_from_env_bad_number_falls_back(self, caplog):
        with patch.dict(os.environ, {"SF_BULK_MAX_POLLS": "lots"}, clear=False):
            cfg = SFConfig.from_env()

        assert cfg.bulk_max_polls == 60
        assert "SF_BULK_MAX_POLLS" in caplog.text


class TestApiCall:
    """Tests for the authenticated transport."""

    def test_sets_bearer_and_json_headers(self, api, conn, make_response):
        with patch.object(api.session, "request", return_value=make_response()) as req:
            api.api_call(conn, "/services/data/v58.0/limits/")

        method, url = req.call_args.args
        headers = req.call_args.kwargs["headers"]
        assert method == "GET"
        assert url == "https://example.my.salesforce.com/services/data/v58.0/limits/"
        assert headers["Authorization"] == "Bearer 00DFAKE-TOKEN"
        assert headers["Content-Type"] == "application/json"
        assert req.call_args.kwargs["timeout"] == 10.0

    def test_caller_headers_override(self, api, conn, make_response):
        with patch.object(api.session, "request", return_value=make_response()) as req:
            api.api_call(conn, "/x", headers={"Content-Type": "text/csv", "Accept": "text/csv"})

        headers = req.call_args.kwargs["headers"]
        assert headers["Content-Type"] == "text/csv"
        assert headers["Accept"] == "text/csv"
        assert headers["Authorization"] == "Bearer 00DFAKE-TOKEN"

    def test_does_not_check_status(self, api, conn, make_response):
        bad = make_response(500, reason="Server Error")
        with patch.object(api.session, "request", return_value=bad) as req:
            r = api.api_call(conn, "/x")

        assert r is bad
        assert req.call_count == 1

    def test_network_error_is_not_retried(self, api, conn):
        with patch.object(
            api.session, "request", side_effect=requests.ConnectionError("refused")
        ) as req:
            with pytest.raises(TransportError) as exc_info:
                api.api_call(conn, "/x")

        assert req.call_count == 1
        assert isinstance(exc_info.value.__cause__, requests.ConnectionError)


class TestExecuteQuery:
    """Tests for the synchronous SOQL executor."""

    def test_query_encodes_once(self, api, conn, make_response):
        soql = "SELECT Id, Name FROM Account WHERE Name = 'A&B %25' LIMIT 5"
        payload = {"totalSize": 1, "done": True, "records": [{"Id": "001", "Name": "A&B %25"}]}

        with patch.object(
            api.session, "request", return_value=make_response(json_data=payload)
        ) as req:
            result = api.execute_query(conn, soql)

        url = req.call_args.args[1]
        prefix = "https://example.my.salesforce.com/services/data/v58.0/query/?q="
        assert url.startswith(prefix)
        encoded = url[len(prefix):]
        assert " " not in encoded and "&" not in encoded
        assert unquote(encoded) == soql
        assert result.total_size == 1
        assert result.records[0]["Name"] == "A&B %25"

    def test_first_page_only(self, api, conn, make_response):
        payload = {
            "totalSize": 4000,
            "done": False,
            "records": [{"Id": "001"}],
            "nextRecordsUrl": "/services/data/v58.0/query/01gNEXT-2000",
        }
        with patch.object(
            api.session, "request", return_value=make_response(json_data=payload)
        ) as req:
            result = api.execute_query(conn, "SELECT Id FROM Account")

        assert req.call_count == 1
        assert result.done is False
        assert result.total_size == 4000
        assert result.next_records_url == "/services/data/v58.0/query/01gNEXT-2000"

    def test_failure_raises_query_error(self, api, conn, make_response):
        err = make_response(
            400,
            json_data=[{"errorCode": "MALFORMED_QUERY", "message": "unexpected token"}],
            reason="Bad Request",
        )
        with patch.object(api.session, "request", return_value=err):
            with pytest.raises(QueryError) as exc_info:
                api.execute_query(conn, "SELEC Id FROM Account")

        assert exc_info.value.status_code == 400
        assert "Bad Request" in str(exc_info.value)
        assert exc_info.value.payload[0]["errorCode"] == "MALFORMED_QUERY"

    def test_query_more(self, api, conn, make_response):
        payload = {"totalSize": 3, "done": True, "records": [{"Id": "003"}]}
        with patch.object(
            api.session, "request", return_value=make_response(json_data=payload)
        ) as req:
            result = api.query_more(conn, "/services/data/v58.0/query/01gNEXT-2")

        assert req.call_args.args[1] == (
            "https://example.my.salesforce.com/services/data/v58.0/query/01gNEXT-2"
        )
        assert result.records == [{"Id": "003"}]


class TestDiscovery:
    """Tests for describe, sobjects and limits."""

    def test_get_object_metadata(self, api, conn, make_response):
        with patch.object(
            api.session, "request", return_value=make_response(json_data=ACCOUNT_DESCRIBE)
        ) as req:
            md = api.get_object_metadata(conn, "Account")

        assert req.call_args.args[1].endswith("/services/data/v58.0/sobjects/Account/describe/")
        assert isinstance(md, ObjectMetadata)
        assert md.key_prefix == "001"
        assert md.get_field("OwnerId").reference_to == frozenset({"User"})

    def test_get_object_metadata_failure(self, api, conn, make_response):
        with patch.object(
            api.session, "request", return_value=make_response(404, text="nope", reason="Not Found")
        ):
            with pytest.raises(MetadataFetchError) as exc_info:
                api.get_object_metadata(conn, "Nope__c")

        assert "Nope__c" in str(exc_info.value)
        assert exc_info.value.payload == "nope"

    def test_list_objects(self, api, conn, make_response):
        body = {"sobjects": [{"name": "Account"}, {"name": "Contact"}]}
        with patch.object(
            api.session, "request", return_value=make_response(json_data=body)
        ) as req:
            result = api.list_objects(conn)

        assert req.call_args.args[1].endswith("/services/data/v58.0/sobjects/")
        assert len(result["sobjects"]) == 2

    def test_org_limits(self, api, conn, make_response):
        body = {"DailyApiRequests": {"Max": 15000, "Remaining": 14999}}
        with patch.object(
            api.session, "request", return_value=make_response(json_data=body)
        ) as req:
            result = api.get_org_limits(conn)

        assert req.call_args.args[1].endswith("/services/data/v58.0/limits/")
        assert result["DailyApiRequests"]["Remaining"] == 14999

    def test_org_limits_failure(self, api, conn, make_response):
        with patch.object(
            api.session, "request", return_value=make_response(401, reason="Unauthorized")
        ):
            with pytest.raises(UpstreamStatusError, match="Unauthorized"):
                api.get_org_limits(conn)


class TestFetchRecord:
    """Tests for single-record lookup."""

    def test_build_record_query(self):
        md = ObjectMetadata.from_describe(ACCOUNT_DESCRIBE)

        soql = build_record_query(md, "001xx")

        assert soql == (
            "SELECT Id, CreatedDate, LastModifiedDate, CreatedBy.Name, LastModifiedBy.Name, "
            "Name, OwnerId FROM Account WHERE Id = '001xx' LIMIT 1"
        )

    def test_build_record_query_escapes_quotes(self):
        md = ObjectMetadata.from_describe(ACCOUNT_DESCRIBE)

        soql = build_record_query(md, "x' OR Name != '")

        assert soql.endswith("WHERE Id = 'x\\' OR Name != \\'' LIMIT 1")

    def test_fetch_record(self, api, conn, make_response):
        record = {"Id": "001xx", "Name": "Acme"}
        responses = [
            make_response(json_data=ACCOUNT_DESCRIBE),
            make_response(json_data={"totalSize": 1, "done": True, "records": [record]}),
        ]
        with patch.object(api.session, "request", side_effect=responses):
            got, md = api.fetch_record(conn, "Account", "001xx")

        assert got == record
        assert md.name == "Account"

    def test_fetch_record_uses_cache(self, api, conn, make_response):
        cache = MetadataCache()
        cache.put(conn.instance_url, "Account", ObjectMetadata.from_describe(ACCOUNT_DESCRIBE))
        result = {"totalSize": 1, "done": True, "records": [{"Id": "001xx"}]}

        with patch.object(
            api.session, "request", return_value=make_response(json_data=result)
        ) as req:
            api.fetch_record(conn, "Account", "001xx", cache=cache)

        # only the query, no describe
        assert req.call_count == 1
        assert "/query/?q=" in req.call_args.args[1]

    def test_fetch_record_not_found(self, api, conn, make_response):
        responses = [
            make_response(json_data=ACCOUNT_DESCRIBE),
            make_response(json_data={"totalSize": 0, "done": True, "records": []}),
        ]
        with patch.object(api.session, "request", side_effect=responses):
            with pytest.raises(RecordNotFound, match="001missing"):
                api.fetch_record(conn, "Account", "001missing")


def test_init_without_config():
    with patch.dict(os.environ, {"SF_API_VERSION": "v61.0"}, clear=False):
        api = SalesforceAPI()

    assert api.api_version == "v61.0"
    assert api.data_path("limits/") == "/services/data/v61.0/limits/"
