"""HuggingFace model resolver: config.json (+ optional metadata) to ModelSpec."""

import logging
import math

import httpx

from aicalc.config import HF_TIMEOUT, HF_TOKEN
from aicalc.engine.quantization import Quantization, get_quantization_info
from aicalc.engine.specs import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_OUTPUT_TOKENS,
    DEFAULT_PROMPT_TOKENS,
    ModelSpec,
)
from aicalc.errors import ModelResolutionError

logger = logging.getLogger(__name__)

HF_BASE_URL = "https://huggingface.co"

# Fields that may carry an explicit parameter count, in priority order
SAFETENSORS_COUNT_FIELDS = ("num_params", "total_params", "parameters")
CONFIG_COUNT_FIELDS = ("num_parameters", "total_params", "_num_parameters")
MODEL_INFO_COUNT_PATHS = (
    ("safetensors", "parameters"),
    ("pytorch_model", "parameters"),
    ("transformersInfo", "parameters"),
)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def _get_json(url: str) -> dict:
    headers = {"Authorization": f"Bearer {HF_TOKEN}"} if HF_TOKEN else None
    response = httpx.get(url, timeout=HF_TIMEOUT, follow_redirects=True, headers=headers)
    response.raise_for_status()
    return response.json()


def fetch_hf_config(hf_id: str) -> dict:
    """Fetch config.json; HTTP failures propagate as httpx.HTTPError."""
    config = _get_json(f"{HF_BASE_URL}/{hf_id}/raw/main/config.json")
    logger.info("Fetched config.json for %s", hf_id)
    return config


def fetch_safetensors_index(hf_id: str) -> dict | None:
    """Fetch model.safetensors.index.json, or None when the repo has none."""
    url = f"{HF_BASE_URL}/{hf_id}/resolve/main/model.safetensors.index.json"
    try:
        return _get_json(url)
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("No safetensors index for %s: %s", hf_id, e)
        return None


def fetch_hf_model_info(hf_id: str) -> dict | None:
    """Fetch Hub API metadata for the repo, or None when unavailable."""
    try:
        return _get_json(f"{HF_BASE_URL}/api/models/{hf_id}")
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("No Hub API info for %s: %s", hf_id, e)
        return None


# ---------------------------------------------------------------------------
# Config interpretation
# ---------------------------------------------------------------------------


def resolve_text_config(config: dict) -> dict:
    """Unwrap multimodal configs (e.g. Gemma 3 4B+) to the text backbone."""
    text_config = config.get("text_config")
    if isinstance(text_config, dict) and "hidden_size" not in config:
        return {**config, **text_config}
    return config


def _positive(value) -> float | None:
    """A finite positive number, or None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _to_billions(value) -> float | None:
    if isinstance(value, dict):
        # Per-dtype counts from the Hub API
        counts = [_positive(v) for v in value.values()]
        value = sum(c for c in counts if c is not None) or None
    count = _positive(value)
    return count / 1e9 if count is not None else None


def detect_quantization(config: dict) -> Quantization:
    """Map torch_dtype to a quantization; absent dtype means FP16.

    Raises ValueError for dtypes with no matching quantization.
    """
    dtype = config.get("torch_dtype") or config.get("dtype")
    if not dtype:
        return Quantization.FP16
    dtype = str(dtype).lower()
    if "float32" in dtype or "fp32" in dtype:
        return Quantization.FP32
    if any(tag in dtype for tag in ("float16", "fp16", "bf16")):
        return Quantization.FP16
    if "int8" in dtype:
        return Quantization.INT8
    if "int4" in dtype:
        return Quantization.INT4
    raise ValueError(f"Unsupported torch_dtype '{dtype}'")


def estimate_parameters_from_architecture(config: dict) -> float | None:
    """Dense transformer estimate in billions; None unless every field is present.

    embeddings + L * (4h^2 + h) attention + L * (2hi + h) MLP + final norm
    """
    hidden = _positive(config.get("hidden_size"))
    intermediate = _positive(config.get("intermediate_size"))
    layers = _positive(config.get("num_hidden_layers"))
    vocab = _positive(config.get("vocab_size"))
    if None in (hidden, intermediate, layers, vocab):
        return None

    embeddings = vocab * hidden
    attention = layers * (4 * hidden * hidden + hidden)
    mlp = layers * (2 * hidden * intermediate + hidden)
    return (embeddings + attention + mlp + hidden) / 1e9


def resolve_parameter_count(
    hf_id: str,
    config: dict,
    safetensors_index: dict | None = None,
    model_info: dict | None = None,
) -> float:
    """Parameter count in billions from the most authoritative source available.

    Order: safetensors total_size / dtype bytes, safetensors metadata
    counts, config count fields, Hub API counts, architecture estimate.
    """
    metadata = (safetensors_index or {}).get("metadata") or {}

    total_size = _positive(metadata.get("total_size"))
    if total_size is not None:
        try:
            bytes_per_param = get_quantization_info(detect_quantization(config)).bytes_per_parameter
        except ValueError:
            bytes_per_param = None
        if bytes_per_param is not None:
            params_b = total_size / bytes_per_param / 1e9
            logger.info(
                "%s: %.2fB parameters from safetensors total_size (%d bytes / %g)",
                hf_id, params_b, total_size, bytes_per_param,
            )
            return params_b

    for key in SAFETENSORS_COUNT_FIELDS:
        params_b = _to_billions(metadata.get(key))
        if params_b is not None:
            return params_b

    for key in CONFIG_COUNT_FIELDS:
        params_b = _to_billions(config.get(key))
        if params_b is not None:
            return params_b

    for section, key in MODEL_INFO_COUNT_PATHS:
        params_b = _to_billions(((model_info or {}).get(section) or {}).get(key))
        if params_b is not None:
            return params_b

    estimate = estimate_parameters_from_architecture(resolve_text_config(config))
    if estimate is not None:
        logger.warning("%s: no published parameter count, estimated %.2fB", hf_id, estimate)
        return estimate

    raise ModelResolutionError(hf_id, "no parameter count in any source and config too sparse to estimate")


def model_spec_from_config(
    hf_id: str,
    config: dict,
    safetensors_index: dict | None = None,
    model_info: dict | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    prompt_tokens: int = DEFAULT_PROMPT_TOKENS,
    output_tokens: int = DEFAULT_OUTPUT_TOKENS,
) -> ModelSpec:
    """Build a ModelSpec from a HuggingFace config.

    Architecture fields the config does not provide (or provides as
    non-positive / non-finite values) stay absent.
    """
    text = resolve_text_config(config)

    try:
        quantization = detect_quantization(text)
    except ValueError as e:
        logger.warning("Precision detection failed for %s, assuming FP16: %s", hf_id, e)
        quantization = Quantization.FP16

    hidden = _positive(text.get("hidden_size"))
    heads = _positive(text.get("num_attention_heads"))
    head_dim = _positive(text.get("head_dim"))
    if head_dim is None and hidden is not None and heads is not None:
        head_dim = hidden // heads

    context_length = _positive(text.get("max_position_embeddings"))
    if context_length is None:
        raise ModelResolutionError(hf_id, "config has no max_position_embeddings")

    def as_int(value: float | None) -> int | None:
        return int(value) if value is not None else None

    return ModelSpec(
        name=hf_id,
        parameter_count_b=resolve_parameter_count(hf_id, config, safetensors_index, model_info),
        context_length=int(context_length),
        batch_size=batch_size,
        prompt_tokens=prompt_tokens,
        output_tokens=output_tokens,
        quantization=quantization,
        head_dimension=as_int(head_dim),
        layer_count=as_int(_positive(text.get("num_hidden_layers"))),
        head_count=as_int(heads),
        kv_head_count=as_int(_positive(text.get("num_key_value_heads"))),
        hidden_size=as_int(hidden),
        intermediate_size=as_int(_positive(text.get("intermediate_size"))),
    )


def load_model_from_hub(hf_id: str, **workload) -> ModelSpec:
    """Fetch everything the Hub offers for *hf_id* and build a ModelSpec.

    *workload* takes batch_size, prompt_tokens and output_tokens.
    """
    config = fetch_hf_config(hf_id)
    safetensors_index = fetch_safetensors_index(hf_id)
    model_info = fetch_hf_model_info(hf_id)
    return model_spec_from_config(hf_id, config, safetensors_index, model_info, **workload)
