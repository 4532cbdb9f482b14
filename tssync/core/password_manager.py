"""Server-generated passwords kept as persistent values.

A generated password is produced once, on create, against the password
requirements of a template field. Reading, updating or deleting it never
contacts the server, otherwise every run would yield a new value.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from ..errors import UnknownFieldSlug
from ..server.protocol import RemoteClient
from .log_manager import log_event
from .models import GeneratedPassword, GeneratedPasswordState
from .template_resolver import TemplateResolver

logger = logging.getLogger(__name__)


class PasswordManager:
    def __init__(self, client: RemoteClient, *, resolver: Optional[TemplateResolver] = None) -> None:
        self._client = client
        self._resolver = resolver or TemplateResolver(client)

    def generate(self, template_id: int, field: str) -> GeneratedPasswordState:
        logger.debug("generating password for the '%s' field on template %d", field, template_id)
        template = self._resolver.resolve(template_id)
        definition = template.get_field(field)
        if definition is None:
            log_event("password.generate", ok=False, template_id=template_id, field=field)
            raise UnknownFieldSlug(field, template_name=template.name)
        value = self._client.generate_password(definition.field_id)
        log_event("password.generate", template_id=template_id, field=field)
        return GeneratedPasswordState(id=str(uuid.uuid4()), template_id=template_id, field=field, value=value)

    def create(self, desired: GeneratedPassword) -> GeneratedPasswordState:
        return self.generate(desired.template_id, desired.field)

    def apply(
        self,
        desired: Optional[GeneratedPassword],
        state: Optional[GeneratedPasswordState],
    ) -> Optional[GeneratedPasswordState]:
        if desired is None:
            return None
        if state is None:
            return self.create(desired)
        return state


__all__ = ["PasswordManager"]
