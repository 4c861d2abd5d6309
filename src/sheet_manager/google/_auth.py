from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

import google.auth
import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import credentials as user_credentials
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.http import HttpRequest

from sheet_manager import config
from sheet_manager import logger as log

from .errors import AuthError
from .types import (
    APPLICATION_DEFAULT,
    AUTHORIZED_USER,
    SERVICE_ACCOUNT,
    Credential,
)

log = log.get_logger()


DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/spreadsheets",
)


@dataclass(frozen=True)
class AuthConfig:
    """How Google credentials should be located when read from the environment."""

    scopes: tuple[str, ...] = DEFAULT_SCOPES
    credentials_json_env: str = config.GOOGLE_CREDENTIALS_JSON_ENV
    credentials_file: str = config.GOOGLE_CREDENTIALS_FILE


def credential_from_env(auth: AuthConfig | None = None) -> Credential:
    """Pick credentials from the JSON env var, else from the key file.

    If the env var contains invalid JSON, falls back to the key file.
    """

    auth = auth or AuthConfig()
    creds_json = os.getenv(auth.credentials_json_env)

    if creds_json:
        try:
            creds_dict = json.loads(creds_json)
            if not isinstance(creds_dict, dict):
                raise ValueError("Decoded credentials JSON is not a dict")
            return Credential.from_info(creds_dict)
        except ValueError as e:
            log.warning(
                f"Invalid {auth.credentials_json_env} ({e}); falling back to {auth.credentials_file}"
            )

    return Credential.from_file(auth.credentials_file)


def load_credentials(credential: Credential, scopes: tuple[str, ...] = DEFAULT_SCOPES):
    """Turn a tagged Credential into a google-auth credentials object."""

    scope_list = list(scopes)
    try:
        if credential.kind == SERVICE_ACCOUNT:
            if credential.info is not None:
                creds = service_account.Credentials.from_service_account_info(
                    credential.info, scopes=scope_list
                )
            else:
                creds = service_account.Credentials.from_service_account_file(
                    credential.path, scopes=scope_list
                )
        elif credential.kind == AUTHORIZED_USER:
            if credential.info is not None:
                creds = user_credentials.Credentials.from_authorized_user_info(
                    credential.info, scopes=scope_list
                )
            else:
                creds = user_credentials.Credentials.from_authorized_user_file(
                    credential.path, scopes=scope_list
                )
        else:
            creds, _project = google.auth.default(scopes=scope_list)
    except (GoogleAuthError, ValueError, OSError) as e:
        raise AuthError(f"Unable to load {credential.kind} credentials: {e}") from e

    if creds is None:
        raise AuthError(f"No credentials derived from {credential.kind} source")
    return creds


@dataclass(frozen=True)
class GoogleSession:
    """Authorized, scoped credentials shared by every service a client builds.

    Every request executes on its own AuthorizedHttp because httplib2 connections
    are not safe to share between threads.
    """

    credentials: Any
    scopes: tuple[str, ...] = DEFAULT_SCOPES

    def authorized_http(self) -> google_auth_httplib2.AuthorizedHttp:
        return google_auth_httplib2.AuthorizedHttp(
            self.credentials, http=httplib2.Http()
        )

    def _request_builder(self, _http, *args, **kwargs) -> HttpRequest:
        return HttpRequest(self.authorized_http(), *args, **kwargs)

    def build_service(self, name: str, version: str) -> Any:
        return build(
            name,
            version,
            http=self.authorized_http(),
            requestBuilder=self._request_builder,
            cache_discovery=False,
        )


def create_session(
    credential: Credential | dict[str, Any] | None,
    scopes: tuple[str, ...] = DEFAULT_SCOPES,
) -> GoogleSession:
    if credential is None:
        credential = Credential(kind=APPLICATION_DEFAULT)
    elif isinstance(credential, dict):
        try:
            credential = Credential.from_info(credential)
        except ValueError as e:
            raise AuthError(str(e)) from e

    creds = load_credentials(credential, scopes)
    log.debug(f"Google session created from {credential.kind} credentials")
    return GoogleSession(credentials=creds, scopes=tuple(scopes))


def build_sheets_service(session: GoogleSession) -> Any:
    return session.build_service("sheets", "v4")


def build_drive_service(session: GoogleSession) -> Any:
    return session.build_service("drive", "v3")
