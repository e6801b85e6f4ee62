"""Request-field names for argument binding.

Only the keyword-only block is read: `def method(*, name, email)` yields
`["name", "email"]`. Positional parameters, `*args` and `**kwargs` are not
request fields and are ignored. Callables without an introspectable
signature yield `[]`.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable


def extract_signature(method: Callable[..., Any]) -> list[str]:
    try:
        signature = inspect.signature(method)
    except (TypeError, ValueError):
        return []
    return [
        param.name.strip()
        for param in signature.parameters.values()
        if param.kind is inspect.Parameter.KEYWORD_ONLY
    ]
