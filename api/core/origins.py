"""
Cross-origin access policy.

The decision is data-driven: an exact allow-list plus at most one
structured preview-deployment pattern of the shape

    https://<prefix>-<slug>-<owner>.<domain>

where prefix, owner and domain are fixed per deployment and slug is a run
of letters, digits and hyphens that starts with a letter or digit.
`OriginRuleSet.is_allowed` is a pure function of the origin string, so it
can be tested without an HTTP request. `OriginPolicyMiddleware` plugs the
rule set into Starlette's CORS handling as the single named policy of the
process.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from starlette.datastructures import Headers, MutableHeaders
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from .config import Settings

POLICY_NAME = "AllowFrontend"

PREVIEW_SCHEME = "https"

_SLUG = r"[A-Za-z0-9][A-Za-z0-9-]*"


@dataclass(frozen=True)
class OriginPattern:
    prefix: str
    owner: str
    domain: str
    scheme: str = PREVIEW_SCHEME
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not (self.scheme and self.prefix and self.owner and self.domain):
            raise ValueError("Origin pattern requires scheme, prefix, owner and domain.")
        regex = re.compile(
            rf"{re.escape(self.scheme)}://{re.escape(self.prefix)}-{_SLUG}-{re.escape(self.owner)}\.{re.escape(self.domain)}"
        )
        object.__setattr__(self, "_regex", regex)

    def matches(self, origin: str) -> bool:
        return self._regex.fullmatch(origin) is not None


@dataclass(frozen=True)
class OriginRuleSet:
    allowed: frozenset[str] = frozenset()
    pattern: OriginPattern | None = None

    @classmethod
    def build(cls, allowed: Iterable[str], pattern: OriginPattern | None = None) -> OriginRuleSet:
        return cls(allowed=frozenset(o for o in allowed if o), pattern=pattern)

    @classmethod
    def from_settings(cls, settings: Settings) -> OriginRuleSet:
        pattern = None
        # Any empty fixed segment turns the preview pattern off.
        if settings.cors_preview_prefix and settings.cors_preview_owner and settings.cors_preview_domain:
            pattern = OriginPattern(
                prefix=settings.cors_preview_prefix,
                owner=settings.cors_preview_owner,
                domain=settings.cors_preview_domain,
            )
        return cls.build(settings.cors_allowed_origins, pattern)

    def is_allowed(self, origin: str | None) -> bool:
        if not origin:
            return False
        if origin in self.allowed:
            return True
        if self.pattern is None:
            return False
        return self.pattern.matches(origin)


class OriginPolicyMiddleware(CORSMiddleware):
    """
    Starlette CORS middleware whose origin check is an `OriginRuleSet`.

    Allowed origins get credentials, any method and any header. Denied
    origins get no `Access-Control-*` header at all and the browser
    enforces same-origin.
    """

    def __init__(self, app: ASGIApp, rules: OriginRuleSet, max_age: int = 600) -> None:
        super().__init__(
            app,
            allow_origins=(),
            allow_methods=("*",),
            allow_headers=("*",),
            allow_credentials=True,
            max_age=max_age,
        )
        self.rules = rules
        # Starlette sends simple_headers on every cross-origin response;
        # the credentials grant must only follow an allowed origin.
        self.simple_headers.pop("Access-Control-Allow-Credentials", None)

    def is_allowed_origin(self, origin: str) -> bool:
        return self.rules.is_allowed(origin)

    def allow_explicit_origin(self, headers: MutableHeaders, origin: str) -> None:
        super().allow_explicit_origin(headers, origin)
        headers["Access-Control-Allow-Credentials"] = "true"

    def preflight_response(self, request_headers: Headers) -> Response:
        if not self.rules.is_allowed(request_headers.get("origin")):
            return PlainTextResponse("Disallowed CORS origin", status_code=400, headers={"Vary": "Origin"})
        return super().preflight_response(request_headers)
