"""Synchronous Secret Server REST client built on :mod:`httpx`."""

from __future__ import annotations

import base64
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..core.models import SETTING_NAMES, Secret, SecretField, Template, TemplateField
from ..errors import RemoteError
from .config import ServerConfiguration

logger = logging.getLogger(__name__)

API_PATH = "/api/v1"
TOKEN_PATH = "/oauth2/token"
DEFAULT_TIMEOUT = 30.0


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _file_bytes(value: str) -> bytes:
    return value.encode("utf-8", errors="surrogateescape")


def template_from_payload(payload: Dict[str, Any]) -> Template:
    fields = tuple(
        TemplateField(
            field_id=int(entry.get("secretTemplateFieldId", 0)),
            slug=str(entry.get("fieldSlugName", "")),
            display_name=entry.get("displayName") or "",
            description=entry.get("description") or "",
            name=entry.get("name") or "",
            is_file=bool(entry.get("isFile")),
            is_notes=bool(entry.get("isNotes")),
            is_password=bool(entry.get("isPassword")),
            is_required=bool(entry.get("isRequired")),
            is_url=bool(entry.get("isUrl")),
        )
        for entry in payload.get("fields") or []
    )
    return Template(template_id=int(payload.get("id", 0)), name=payload.get("name") or "", fields=fields)


def field_from_payload(entry: Dict[str, Any]) -> SecretField:
    return SecretField(
        slug=entry.get("slug") or "",
        field_id=int(entry.get("fieldId") or 0),
        value=entry.get("itemValue") or "",
        filename=entry.get("filename") or "",
        field_name=entry.get("fieldName") or "",
        field_description=entry.get("fieldDescription") or "",
        file_attachment_id=int(entry.get("fileAttachmentId") or 0),
        is_file=bool(entry.get("isFile")),
        is_notes=bool(entry.get("isNotes")),
        is_password=bool(entry.get("isPassword")),
        item_id=int(entry.get("itemId") or 0),
    )


def field_to_payload(secret_field: SecretField) -> Dict[str, Any]:
    return {
        "itemId": secret_field.item_id,
        "fieldId": secret_field.field_id,
        "fileAttachmentId": secret_field.file_attachment_id,
        "fieldName": secret_field.field_name,
        "slug": secret_field.slug,
        "fieldDescription": secret_field.field_description,
        "filename": secret_field.filename,
        "itemValue": secret_field.value,
        "isFile": secret_field.is_file,
        "isNotes": secret_field.is_notes,
        "isPassword": secret_field.is_password,
    }


def secret_from_payload(payload: Dict[str, Any]) -> Secret:
    settings = {name: payload[_camel(name)] for name in SETTING_NAMES if payload.get(_camel(name)) is not None}
    items = payload.get("items")
    return Secret(
        **settings,
        id=int(payload.get("id", 0)),
        active=bool(payload.get("active", True)),
        fields=None if items is None else [field_from_payload(entry) for entry in items],
    )


def secret_to_payload(secret: Secret) -> Dict[str, Any]:
    payload: Dict[str, Any] = {_camel(name): value for name, value in secret.settings().items()}
    payload["id"] = secret.id
    payload["active"] = secret.active
    payload["items"] = [field_to_payload(secret_field) for secret_field in secret.fields or []]
    if secret.ssh_key_args is not None:
        payload["sshKeyArgs"] = {
            "generateSshKeys": secret.ssh_key_args.generate_ssh_keys,
            "generatePassphrase": secret.ssh_key_args.generate_passphrase,
        }
    return payload


class SecretServerClient:
    """Talk to the Secret Server REST API v1 with an OAuth2 password grant.

    Failures are raised as :class:`RemoteError` carrying the HTTP status code;
    nothing is retried here.
    """

    def __init__(
        self,
        config: ServerConfiguration,
        *,
        http: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._config = config
        self._http = http or httpx.Client(base_url=config.base_url, timeout=timeout)
        self._token: Optional[str] = None

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SecretServerClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- transport ---------------------------------------------------------
    def _access_token(self) -> str:
        if self._token is not None:
            return self._token
        form = {
            "grant_type": "password",
            "username": self._config.username,
            "password": self._config.password,
        }
        try:
            response = self._http.post(TOKEN_PATH, data=form)
        except httpx.HTTPError as exc:
            raise RemoteError(f"unable to reach {TOKEN_PATH}: {exc}") from exc
        if response.status_code >= 400:
            raise RemoteError(
                f"authentication as {self._config.username} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        token = response.json().get("access_token")
        if not token:
            raise RemoteError("token response did not contain an access_token")
        self._token = token
        return token

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        url = f"{API_PATH}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._http.request(method, url, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise RemoteError(
                f"{method} {url} returned HTTP {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    # -- templates -----------------------------------------------------------
    def get_template(self, template_id: int) -> Template:
        return template_from_payload(self._request("GET", f"/secret-templates/{template_id}").json())

    def generate_password(self, field_id: int) -> str:
        response = self._request("POST", f"/secret-templates/generate-password/{field_id}")
        return str(response.json())

    # -- secrets -------------------------------------------------------------
    def _load_files(self, secret: Secret) -> Secret:
        for secret_field in secret.fields or []:
            if secret_field.is_file and secret_field.file_attachment_id:
                response = self._request("GET", f"/secrets/{secret.id}/fields/{secret_field.slug}")
                secret_field.value = response.content.decode("utf-8", errors="surrogateescape")
        return secret

    def _upload_files(self, secret_id: int, files: List[SecretField]) -> None:
        for secret_field in files:
            body = {
                "fileName": secret_field.filename,
                "fileAttachment": base64.b64encode(_file_bytes(secret_field.value)).decode("ascii"),
            }
            self._request("PUT", f"/secrets/{secret_id}/fields/{secret_field.slug}", json=body)

    def _clear_files(self, secret_id: int, slugs: List[str]) -> None:
        for slug in slugs:
            self._request("PUT", f"/secrets/{secret_id}/fields/{slug}", json={"clearFile": True})

    @staticmethod
    def _stale_files(current: Secret, secret: Secret) -> List[str]:
        """Slugs of attachments the server holds that *secret* sends as empty."""

        attached = {f.slug for f in current.fields or [] if f.is_file and (f.file_attachment_id or f.filename)}
        return [f.slug for f in secret.fields or [] if f.is_file and not f.value and f.slug in attached]

    @staticmethod
    def _split_files(secret: Secret) -> Tuple[Secret, List[SecretField]]:
        """Return the secret without file contents plus the file fields to upload."""

        uploads = [f for f in secret.fields or [] if f.is_file and f.value]
        inline = [replace(f, value="") if f.is_file else f for f in secret.fields or []]
        return replace(secret, fields=inline), uploads

    def get_secret(self, secret_id: int) -> Secret:
        return self._load_files(secret_from_payload(self._request("GET", f"/secrets/{secret_id}").json()))

    def get_secret_by_path(self, path: str) -> Secret:
        response = self._request("GET", "/secrets/0", params={"secretPath": path})
        return self._load_files(secret_from_payload(response.json()))

    def create_secret(self, secret: Secret) -> Secret:
        inline, uploads = self._split_files(secret)
        created = secret_from_payload(self._request("POST", "/secrets", json=secret_to_payload(inline)).json())
        if not uploads:
            return self._load_files(created)
        self._upload_files(created.id, uploads)
        return self.get_secret(created.id)

    def update_secret(self, secret: Secret) -> Secret:
        inline, uploads = self._split_files(secret)
        current = secret_from_payload(self._request("GET", f"/secrets/{secret.id}").json())
        self._request("PUT", f"/secrets/{secret.id}", json=secret_to_payload(inline))
        self._upload_files(secret.id, uploads)
        # an empty inline file value leaves the attachment in place
        self._clear_files(secret.id, self._stale_files(current, secret))
        return self.get_secret(secret.id)

    def delete_secret(self, secret_id: int) -> None:
        self._request("DELETE", f"/secrets/{secret_id}")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or payload)
    return str(payload)


__all__ = [
    "SecretServerClient",
    "secret_from_payload",
    "secret_to_payload",
    "template_from_payload",
]
