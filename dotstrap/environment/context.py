"""Render context composition."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..core.errors import NamespaceCollision
from ..core.models import ResolvedSecret

logger = logging.getLogger(__name__)

SECRETS_KEY = "secrets"


def build_context(
    shared_values: Mapping[str, Any], resolved_secrets: Mapping[str, ResolvedSecret]
) -> dict[str, Any]:
    """Merge shared values and resolved secrets into one rendering context.

    Args:
        shared_values: Values merged verbatim at the context root
        resolved_secrets: Secrets exposed under the reserved ``secrets`` key

    Returns:
        Context dictionary for template rendering
    """
    if SECRETS_KEY in shared_values:
        raise NamespaceCollision(SECRETS_KEY)

    context: dict[str, Any] = dict(shared_values)
    context[SECRETS_KEY] = {
        name: secret.value.get_secret_value()
        for name, secret in resolved_secrets.items()
    }

    logger.debug(
        f"Built context with {len(shared_values)} value(s) and "
        f"{len(resolved_secrets)} secret(s)"
    )
    return context
