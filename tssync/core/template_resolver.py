"""Secret template lookup."""

from __future__ import annotations

import logging

from ..errors import ConfigurationError, RemoteError, TemplateNotFound
from ..server.protocol import RemoteClient
from .models import Template

logger = logging.getLogger(__name__)


class TemplateResolver:
    """Fetch template schemas on demand.

    Template identifiers are configuration constants, so a failed lookup is
    reported straight back to the caller without retrying.
    """

    def __init__(self, client: RemoteClient) -> None:
        self._client = client

    def resolve(self, template_id: int) -> Template:
        if isinstance(template_id, bool) or not isinstance(template_id, int) or template_id <= 0:
            raise ConfigurationError(f"secret template id must be a positive integer, got {template_id!r}")
        logger.debug("fetching secret template %d", template_id)
        try:
            return self._client.get_template(template_id)
        except RemoteError as exc:
            if exc.status_code == 404:
                raise TemplateNotFound(template_id) from exc
            raise


__all__ = ["TemplateResolver"]
