"""Architecture-field resolution under strict or lenient validation."""

from dataclasses import dataclass
from enum import Enum

from aicalc.config import (
    DEFAULT_KV_CACHE_TOKEN_BASIS,
    DEFAULT_STRICT_ARCHITECTURE,
    KV_CACHE_TOKEN_BASIS_ENV,
    STRICT_ARCHITECTURE_ENV,
    get_bool_env,
    get_env,
)
from aicalc.engine.specs import ModelSpec
from aicalc.errors import MissingArchitectureField

# Stage names reported in MissingArchitectureField
STAGE_INTENSITY = "arithmetic intensity"
STAGE_KV_CACHE = "KV cache"
STAGE_ACTIVATION = "activation memory"

# Substitutes used only when strict validation is off. Activation memory is
# not modelled in lenient mode, so hidden/intermediate sizes have no entry.
LENIENT_DEFAULTS: dict[str, int] = {
    "head_dimension": 128,
    "layer_count": 32,
    "head_count": 32,
}


class KvCacheTokenBasis(str, Enum):
    ACTUAL_TOKENS = "actual_tokens"
    CONTEXT_LENGTH = "context_length"


@dataclass(frozen=True)
class EnginePolicy:
    """How the engine treats missing architecture data and sizes the KV cache."""

    strict_architecture_validation: bool = DEFAULT_STRICT_ARCHITECTURE
    kv_cache_token_basis: KvCacheTokenBasis = KvCacheTokenBasis(DEFAULT_KV_CACHE_TOKEN_BASIS)

    @classmethod
    def from_settings(cls) -> "EnginePolicy":
        """Build a policy from the environment (or .env)."""
        strict = get_bool_env(STRICT_ARCHITECTURE_ENV, DEFAULT_STRICT_ARCHITECTURE)
        raw_basis = get_env(KV_CACHE_TOKEN_BASIS_ENV, DEFAULT_KV_CACHE_TOKEN_BASIS)
        try:
            basis = KvCacheTokenBasis(raw_basis.strip().lower())
        except ValueError:
            raise ValueError(
                f"{KV_CACHE_TOKEN_BASIS_ENV} must be one of "
                f"{[b.value for b in KvCacheTokenBasis]}, got {raw_basis!r}"
            ) from None
        return cls(strict_architecture_validation=strict, kv_cache_token_basis=basis)

    @classmethod
    def lenient(cls, kv_cache_token_basis=KvCacheTokenBasis.ACTUAL_TOKENS) -> "EnginePolicy":
        return cls(strict_architecture_validation=False, kv_cache_token_basis=kv_cache_token_basis)

    @classmethod
    def strict(cls, kv_cache_token_basis=KvCacheTokenBasis.ACTUAL_TOKENS) -> "EnginePolicy":
        return cls(strict_architecture_validation=True, kv_cache_token_basis=kv_cache_token_basis)


def require_field(model: ModelSpec, field: str, stage: str, policy: EnginePolicy) -> int:
    """Return an architecture field, its lenient default, or raise.

    Raises MissingArchitectureField when the field is absent and either the
    policy is strict or no lenient default exists.
    """
    value = getattr(model, field)
    if value is not None:
        return value
    if not policy.strict_architecture_validation and field in LENIENT_DEFAULTS:
        return LENIENT_DEFAULTS[field]
    raise MissingArchitectureField(field, stage)


def resolve_kv_head_count(model: ModelSpec, stage: str, policy: EnginePolicy) -> int:
    """KV heads fall back to the attention head count (plain multi-head attention)."""
    if model.kv_head_count is not None:
        return model.kv_head_count
    if model.head_count is not None:
        return model.head_count
    if not policy.strict_architecture_validation:
        return LENIENT_DEFAULTS["head_count"]
    raise MissingArchitectureField("kv_head_count", stage)
