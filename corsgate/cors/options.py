"""
CORS Gate - Policy Options
==========================
Option intake, validation and the immutable policy snapshot
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    field_validator,
    model_validator,
)


WILDCARD = "*"
NULLABLE_KEYS = frozenset({"maxAge", "max_age"})


# =============================================================================
# Exceptions
# =============================================================================


class CorsConfigurationError(ValueError):
    """Raised when a CORS option bag cannot be turned into a policy."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "CorsConfigurationError":
        errors = []
        for error in exc.errors():
            field_name = ".".join(str(loc) for loc in error["loc"]) or "options"
            errors.append({"field": field_name, "message": error["msg"]})

        details = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        return cls(f"Invalid CORS configuration: {details}", errors=errors)


# =============================================================================
# Option Intake
# =============================================================================


class CorsOptions(BaseModel):
    """
    Canonical CORS options.

    Every option is accepted as ``allowedOrigins`` or ``allowed_origins``;
    the camelCase key wins when both are supplied. Only the keys that were
    actually supplied end up in ``model_fields_set``, which is what partial
    reconfiguration merges on.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    allowed_origins: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allowedOrigins", "allowed_origins"),
    )
    allowed_origins_patterns: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allowedOriginsPatterns", "allowed_origins_patterns"),
    )
    allowed_methods: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allowedMethods", "allowed_methods"),
    )
    allowed_headers: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allowedHeaders", "allowed_headers"),
    )
    exposed_headers: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exposedHeaders", "exposed_headers"),
    )
    supports_credentials: StrictBool = Field(
        default=False,
        validation_alias=AliasChoices("supportsCredentials", "supports_credentials"),
    )
    max_age: Optional[int] = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("maxAge", "max_age"),
    )

    @model_validator(mode="before")
    @classmethod
    def drop_null_options(cls, data: Any) -> Any:
        # None means "not supplied", except for max_age where it disables the header
        if isinstance(data, dict):
            return {
                key: value
                for key, value in data.items()
                if value is not None or key in NULLABLE_KEYS
            }
        return data

    @field_validator("exposed_headers", mode="before")
    @classmethod
    def disabled_exposed_headers(cls, v: Any) -> Any:
        # False means "expose nothing"
        if v is False:
            return []
        return v

    @field_validator("allowed_origins_patterns")
    @classmethod
    def compile_check_patterns(cls, v: List[str]) -> List[str]:
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid origin pattern {pattern!r}: {e}") from e
        return v

    @classmethod
    def known_keys(cls) -> frozenset:
        """All accepted option keys, in both spellings."""
        keys = set()
        for info in cls.model_fields.values():
            keys.update(info.validation_alias.choices)
        return frozenset(keys)

    @classmethod
    def parse(cls, options: Any) -> "CorsOptions":
        """Validate a loosely-typed option bag."""
        if not isinstance(options, Mapping):
            raise CorsConfigurationError(
                f"CORS options must be a mapping, got {type(options).__name__}"
            )
        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            raise CorsConfigurationError.from_validation_error(e) from e

    def merge(self, update: "CorsOptions") -> "CorsOptions":
        """Overlay the options explicitly supplied in ``update``."""
        changes = {name: getattr(update, name) for name in update.model_fields_set}
        return self.model_copy(update=changes)


# =============================================================================
# Policy Snapshot
# =============================================================================


def convert_wildcard_to_pattern(origin: str) -> str:
    """
    Turn a wildcard origin into an anchored regular expression.

    Asterisks match zero or more characters, so ``https://*.example.com``
    accepts any subdomain depth but not the bare domain.
    """
    return "^" + re.escape(origin).replace(r"\*", ".*") + r"\Z"


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


@dataclass(frozen=True)
class PolicyConfig:
    """Normalized, read-only CORS policy shared by all request evaluations."""

    allowed_origins: Tuple[str, ...] = ()
    allowed_origins_patterns: Tuple[re.Pattern, ...] = ()
    allowed_methods: Tuple[str, ...] = ()
    allowed_headers: Tuple[str, ...] = ()
    exposed_headers: Tuple[str, ...] = ()
    supports_credentials: bool = False
    max_age: Optional[int] = 0
    allow_all_origins: bool = False
    allow_all_methods: bool = False
    allow_all_headers: bool = False
    options: CorsOptions = field(default_factory=CorsOptions, repr=False, compare=False)

    @classmethod
    def from_options(cls, options: CorsOptions) -> "PolicyConfig":
        """Normalize canonical options into a policy snapshot."""
        origins = _unique(options.allowed_origins)
        methods = _unique(method.upper() for method in options.allowed_methods)
        headers = _unique(header.lower() for header in options.allowed_headers)
        allow_all_origins = WILDCARD in origins

        sources = list(options.allowed_origins_patterns)
        if not allow_all_origins:
            sources.extend(
                convert_wildcard_to_pattern(origin) for origin in origins if WILDCARD in origin
            )

        return cls(
            allowed_origins=origins,
            allowed_origins_patterns=tuple(re.compile(p) for p in _unique(sources)),
            allowed_methods=methods,
            allowed_headers=headers,
            exposed_headers=tuple(options.exposed_headers),
            supports_credentials=options.supports_credentials,
            max_age=options.max_age,
            allow_all_origins=allow_all_origins,
            allow_all_methods=WILDCARD in methods,
            allow_all_headers=WILDCARD in headers,
            options=options,
        )

    @property
    def single_origin(self) -> Optional[str]:
        """The only allowed origin, when the policy is a single static origin."""
        if self.allow_all_origins or self.allowed_origins_patterns:
            return None
        if len(self.allowed_origins) != 1:
            return None
        return self.allowed_origins[0]
