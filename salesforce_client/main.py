from __future__ import annotations

import argparse
import json
import logging
import os
from datetime import timedelta
from typing import List

from dotenv import load_dotenv

from .api.auth_api import RefreshError
from .client import Salesforce
from .models import Credentials, GrantType, SObjectRecord
from .utils.http_client import DEFAULT_API_VERSION, SalesforceError, SessionExpiredError
from .utils.token_cache import (
    DEFAULT_CACHE_PATH,
    clear_cached_token,
    load_cached_token,
    save_cached_token,
)

load_dotenv()


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value


def _env_int(name: str) -> int | None:
    value = _env_str(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _env_int_default(name: str, default: int) -> int:
    value = _env_int(name)
    return default if value is None else value


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a SOQL query against a Salesforce org.")
    parser.add_argument("--domain", default=_env_str("SF_DOMAIN"), help="Login domain, e.g. https://login.salesforce.com")
    parser.add_argument("--username", default=_env_str("SF_USERNAME"), help="Salesforce username")
    parser.add_argument("--password", default=_env_str("SF_PASSWORD"), help="Salesforce password")
    parser.add_argument("--security-token", default=_env_str("SF_SECURITY_TOKEN"), help="Security token appended to the password")
    parser.add_argument("--consumer-key", default=_env_str("SF_CONSUMER_KEY"), help="Connected app consumer key")
    parser.add_argument("--consumer-secret", default=_env_str("SF_CONSUMER_SECRET"), help="Connected app consumer secret")
    parser.add_argument(
        "--consumer-rsa-pem-file",
        default=_env_str("SF_CONSUMER_RSA_PEM_FILE"),
        help="PEM file with the RSA private key for the JWT bearer flow",
    )
    parser.add_argument("--access-token", default=_env_str("SF_ACCESS_TOKEN"), help="Existing access token (not refreshable)")
    parser.add_argument("--jwt-ttl", type=int, default=_env_int_default("SF_JWT_TTL", 300), help="JWT assertion lifetime in seconds")
    parser.add_argument("--api-version", default=_env_str("SF_API_VERSION") or DEFAULT_API_VERSION, help="Data API version")
    parser.add_argument("--timeout", type=int, default=_env_int_default("SF_TIMEOUT", 10), help="HTTP timeout in seconds")
    parser.add_argument("--query", default=_env_str("SF_QUERY"), help="SOQL query to run")
    parser.add_argument("--output", default=_env_str("SF_OUTPUT"), help="Optional JSON file to write the records to")
    token_cache_env = _env_str("SF_TOKEN_CACHE")
    parser.add_argument(
        "--token-cache",
        default=os.path.expanduser(token_cache_env) if token_cache_env else DEFAULT_CACHE_PATH,
        help="File to persist the access token between runs",
    )
    return parser.parse_args(argv)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def build_credentials(args: argparse.Namespace) -> Credentials:
    rsa_pem = ""
    if args.consumer_rsa_pem_file:
        with open(args.consumer_rsa_pem_file, "r", encoding="utf-8") as handle:
            rsa_pem = handle.read()
    return Credentials(
        domain=args.domain or "",
        username=args.username or "",
        password=args.password or "",
        security_token=args.security_token or "",
        consumer_key=args.consumer_key or "",
        consumer_secret=args.consumer_secret or "",
        consumer_rsa_pem=rsa_pem,
        access_token=args.access_token or "",
        jwt_ttl=timedelta(seconds=args.jwt_ttl),
    )


def connect(args: argparse.Namespace) -> Salesforce | None:
    credentials = build_credentials(args)

    if not credentials.access_token:
        cached = load_cached_token(args.token_cache, args.domain)
        if cached:
            token, instance_url = cached
            try:
                return Salesforce(
                    Credentials(domain=instance_url, access_token=token),
                    api_version=args.api_version,
                    timeout=args.timeout,
                )
            except SalesforceError as exc:
                logging.warning("Cached token rejected: %s", exc)
                clear_cached_token(args.token_cache)

    try:
        client = Salesforce(credentials, api_version=args.api_version, timeout=args.timeout)
    except SalesforceError as exc:
        logging.error("Login failed: %s", exc)
        return None

    session = client.session
    if session is not None and session.grant_type is not GrantType.NONE:
        save_cached_token(args.token_cache, session.access_token, session.instance_url, credentials.domain)
    return client


def write_records(path: str, records: List[SObjectRecord]) -> None:
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump([record.model_dump(mode="json", by_alias=True) for record in records], handle, ensure_ascii=False, indent=2)


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()

    if not args.query:
        logging.error("--query (or SF_QUERY) is required")
        return 2

    client = connect(args)
    if client is None:
        return 1

    with client:
        try:
            result = client.query(args.query, List[SObjectRecord])
        except (SessionExpiredError, RefreshError) as exc:
            clear_cached_token(args.token_cache)
            logging.error("%s", exc)
            return 1
        except SalesforceError as exc:
            logging.error("Query failed: %s", exc)
            return 1

    logging.info("Fetched %s records (totalSize=%s)", len(result.records), result.total_size)
    for record in result.records:
        logging.info("%s", json.dumps(record.model_dump(mode="json", by_alias=True), ensure_ascii=False))

    if args.output:
        write_records(args.output, result.records)
        logging.info("Wrote records to %s", args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
