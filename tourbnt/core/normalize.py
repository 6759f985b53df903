"""
Document normalization for API output.

Entities, mappings and lists of either are turned into plain JSON friendly
structures:

- ``_id`` is copied to ``id`` (as a string) and dropped, ``__v`` is dropped
- model instances are dumped first, optionally with camelCase keys
- timestamps become ISO-8601 strings
- per field transforms are applied (see ``model_transforms``)

``normalize_doc`` keeps a small LRU cache keyed by the document id and its
``updated_at`` so repeated normalization of unchanged rows is cheap.
"""

from __future__ import annotations

import json
import time
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from .logging_config import get_logger

logger = get_logger(__name__)

Transform = Callable[[Any], Any]

TIMESTAMP_FIELDS = (
    "createdAt",
    "updatedAt",
    "subscribedAt",
    "appliedAt",
    "approvedAt",
    "created_at",
    "updated_at",
    "subscribed_at",
    "applied_at",
    "approved_at",
)

CACHE_MAX_SIZE = 500


@dataclass(frozen=True)
class NormalizeOptions:
    remove_id: bool = True
    remove_version: bool = True
    add_id: bool = True
    use_cache: bool = True
    monitor_performance: bool = False
    max_array_size: int = 1000
    chunk_size: int = 100
    ensure_iso_timestamps: bool = False
    camel_case: bool = False
    exclude: Tuple[str, ...] = ()
    custom_transforms: Dict[str, Transform] = field(default_factory=dict, hash=False, compare=False)

    def cache_key(self) -> str:
        transforms = ",".join(sorted(self.custom_transforms))
        return (
            f"{int(self.remove_id)}{int(self.remove_version)}{int(self.add_id)}"
            f"{int(self.ensure_iso_timestamps)}{int(self.camel_case)}|{','.join(self.exclude)}|{transforms}"
        )


DEFAULT_OPTIONS = NormalizeOptions()
DEFAULT_API_OPTIONS = NormalizeOptions(ensure_iso_timestamps=True, camel_case=True, exclude=("password",))


# =====================================================================
# Cache and timing
# =====================================================================


class NormalizationCache:
    """LRU cache of normalized documents."""

    def __init__(self, max_size: int = CACHE_MAX_SIZE) -> None:
        self.max_size = max_size
        self._entries: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(doc: Mapping[str, Any], options: NormalizeOptions) -> str:
        identity = doc.get("_id", doc.get("id"))
        if identity is None:
            identity = json.dumps(doc, default=str, sort_keys=True)[:100]
        version = doc.get("updated_at", doc.get("updatedAt", ""))
        return f"{identity}@{version}:{options.cache_key()}"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        cached = self._entries.get(key)
        if cached is None:
            self.misses += 1
            return None
        self.hits += 1
        self._entries.move_to_end(key)
        return dict(cached)

    def set(self, key: str, value: Dict[str, Any]) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = dict(value)

    def stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "maxSize": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hitRate": self.hits / lookups if lookups else 0,
        }

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0


class NormalizationTimer:
    """Running totals for monitored normalization calls."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.operations = 0
        self.total_ms = 0.0
        self.large_array_operations = 0

    def record(self, elapsed_ms: float, large_array: bool = False) -> None:
        self.operations += 1
        self.total_ms += elapsed_ms
        if large_array:
            self.large_array_operations += 1

    def metrics(self) -> Dict[str, Any]:
        return {
            "operations": self.operations,
            "averageTimeMs": round(self.total_ms / self.operations, 3) if self.operations else 0,
            "largeArrayOperations": self.large_array_operations,
        }


_cache = NormalizationCache()
_timer = NormalizationTimer()


# =====================================================================
# Helpers
# =====================================================================


def _to_plain(doc: Any) -> Dict[str, Any]:
    if isinstance(doc, BaseModel):
        return doc.model_dump()
    if isinstance(doc, Mapping):
        return dict(doc)
    raise TypeError(f"Cannot normalize object of type {type(doc).__name__}")


def _to_iso(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).isoformat()
        except ValueError:
            return value
    return value


def _apply_identity(result: Dict[str, Any], options: NormalizeOptions) -> Dict[str, Any]:
    if options.add_id and result.get("_id") is not None:
        result["id"] = str(result["_id"])
    if options.remove_id:
        result.pop("_id", None)
    if options.remove_version:
        result.pop("__v", None)
    return result


def _normalize_one(doc: Any, options: NormalizeOptions) -> Any:
    if doc is None:
        return None
    plain = _to_plain(doc)

    key = None
    if options.use_cache:
        key = NormalizationCache.make_key(plain, options)
        cached = _cache.get(key)
        if cached is not None:
            return cached

    result = _apply_identity(plain, options)
    for name in options.exclude:
        result.pop(name, None)
    if options.ensure_iso_timestamps:
        result = {k: _to_iso(v) for k, v in result.items()}
    if options.camel_case:
        result = {to_camel(k): v for k, v in result.items()}

    if key is not None:
        _cache.set(key, result)
    return result


def _normalize_nested(value: Any, options: NormalizeOptions) -> Any:
    if isinstance(value, list):
        return [_normalize_nested(item, options) for item in value]
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if not isinstance(value, Mapping):
        return value
    result = dict(value)
    if "_id" in result or "__v" in result:
        result = _apply_identity(result, options)
    return {k: _normalize_nested(v, options) for k, v in result.items()}


def _normalize_timestamps(result: Dict[str, Any]) -> Dict[str, Any]:
    for name in TIMESTAMP_FIELDS:
        if result.get(name):
            result[name] = _to_iso(result[name])
    return result


def _apply_custom_transforms(result: Dict[str, Any], transforms: Mapping[str, Transform]) -> Dict[str, Any]:
    for name, transform in transforms.items():
        if name not in result:
            continue
        try:
            result[name] = transform(result[name])
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Custom transform failed for field {name}: {e}")
    return result


# =====================================================================
# Public API
# =====================================================================


def normalize_doc(doc: Any, options: Optional[NormalizeOptions] = None) -> Any:
    """Normalize one document or a list of documents.

    Lists longer than ``max_array_size`` are processed in ``chunk_size`` slices.
    """
    opts = options or DEFAULT_OPTIONS
    started = time.perf_counter() if opts.monitor_performance else None
    large_array = False
    try:
        if isinstance(doc, (list, tuple)):
            if len(doc) > opts.max_array_size:
                large_array = True
                logger.debug(f"Normalizing {len(doc)} documents in chunks of {opts.chunk_size}")
                result: List[Any] = []
                for start in range(0, len(doc), opts.chunk_size):
                    result.extend(_normalize_one(item, opts) for item in doc[start : start + opts.chunk_size])
                return result
            return [_normalize_one(item, opts) for item in doc]
        return _normalize_one(doc, opts)
    finally:
        if started is not None:
            _timer.record((time.perf_counter() - started) * 1000, large_array)


def normalize_for_api(doc: Any, options: Optional[NormalizeOptions] = None) -> Any:
    """Normalize for a response body: ISO timestamps, transforms and nested documents.

    Args:
        doc: Entity, mapping or list of either
        options: Defaults to camelCase keys, ISO timestamps and no ``password``

    Returns:
        JSON friendly structure, ``None`` for ``None``
    """
    opts = options or DEFAULT_API_OPTIONS
    if doc is None:
        return None
    if isinstance(doc, (list, tuple)):
        return [normalize_for_api(item, opts) for item in doc]

    result = _normalize_one(doc, replace(opts, use_cache=False, ensure_iso_timestamps=False))
    if opts.ensure_iso_timestamps:
        result = _normalize_timestamps(result)
    if opts.custom_transforms:
        result = _apply_custom_transforms(result, opts.custom_transforms)
    return _normalize_nested(result, opts)


# =====================================================================
# Nested documents
# =====================================================================


@dataclass(frozen=True)
class NestedField:
    path: str
    is_array: bool = False
    options: Optional[NormalizeOptions] = None


@dataclass(frozen=True)
class DeepNormalizationConfig:
    nested_fields: Tuple[NestedField, ...]
    default_options: Optional[NormalizeOptions] = None


COMMON_NESTED_CONFIGS: Dict[str, DeepNormalizationConfig] = {
    "userWithSellerInfo": DeepNormalizationConfig(
        (
            NestedField("sellerInfo"),
            NestedField("sellerInfo.bankDetails"),
            NestedField("sellerInfo.businessAddress"),
        )
    ),
    "tourWithReferences": DeepNormalizationConfig(
        (
            NestedField("author"),
            NestedField("category"),
            NestedField("destination"),
            NestedField("faqs", is_array=True),
        )
    ),
    "bookingWithReferences": DeepNormalizationConfig((NestedField("tour"), NestedField("user"))),
}


def _get_path(data: Mapping[str, Any], path: str) -> Any:
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    return current


def _set_path(data: Dict[str, Any], path: str, value: Any) -> None:
    keys = path.split(".")
    target = data
    for key in keys[:-1]:
        if not isinstance(target.get(key), dict):
            target[key] = {}
        target = target[key]
    target[keys[-1]] = value


def normalize_deep_nested(doc: Any, config: Union[str, DeepNormalizationConfig]) -> Any:
    """Normalize ``doc`` and then each nested document named by ``config``.

    ``config`` is a ``DeepNormalizationConfig`` or a key of ``COMMON_NESTED_CONFIGS``.
    """
    if isinstance(config, str):
        config = COMMON_NESTED_CONFIGS[config]
    if doc is None:
        return None
    if isinstance(doc, (list, tuple)):
        return [normalize_deep_nested(item, config) for item in doc]

    result = normalize_for_api(doc, config.default_options)
    for nested in config.nested_fields:
        value = _get_path(result, nested.path)
        if value is None:
            continue
        options = nested.options or config.default_options
        if nested.is_array and isinstance(value, list):
            _set_path(result, nested.path, [normalize_for_api(item, options) for item in value])
        elif isinstance(value, (Mapping, BaseModel)):
            _set_path(result, nested.path, normalize_for_api(value, options))
    return result


# =====================================================================
# Transforms
# =====================================================================


def _parse_number(value: Any, cast: Callable[[Any], Any], default: Any) -> Any:
    try:
        parsed = cast(float(value))
    except (TypeError, ValueError):
        return default
    return parsed or default


common_transforms: Dict[str, Transform] = {
    "phone": lambda value: "".join(ch for ch in str(value) if ch.isdigit() or ch == "+") if value else value,
    "email": lambda value: str(value).strip().lower() if value else value,
    "boolean": lambda value: value is True or value == "true",
    "object_id_to_string": lambda value: str(value) if value else value,
}

model_transforms: Dict[str, Dict[str, Transform]] = {
    "User": {
        "email": common_transforms["email"],
        "phone": common_transforms["phone"],
        "verified": common_transforms["boolean"],
    },
    "Tour": {
        "price": lambda value: _parse_number(value, float, 0),
        "duration": lambda value: _parse_number(value, int, 0),
        "maxGroupSize": lambda value: _parse_number(value, int, 0),
    },
    "Booking": {
        "totalPrice": lambda value: _parse_number(value, float, 0),
        "participants": lambda value: _parse_number(value, int, 1),
    },
}


def normalize_with_model_transforms(doc: Any, model_name: str, options: Optional[NormalizeOptions] = None) -> Any:
    opts = options or DEFAULT_API_OPTIONS
    transforms = {**model_transforms.get(model_name, {}), **opts.custom_transforms}
    return normalize_for_api(doc, replace(opts, custom_transforms=transforms))


# =====================================================================
# Reporting
# =====================================================================


def get_normalization_stats() -> Dict[str, Any]:
    return _cache.stats()


def clear_normalization_cache() -> None:
    _cache.clear()
    _timer.reset()
    logger.info("Normalization cache and metrics reset")


def get_performance_report() -> Dict[str, Any]:
    stats = get_normalization_stats()
    recommendations: List[str] = []
    if stats["hits"] + stats["misses"] > 0 and stats["hitRate"] < 0.5:
        recommendations.append("Low cache hit rate detected. Consider caching more frequently accessed documents.")
    if stats["size"] >= stats["maxSize"]:
        recommendations.append("Normalization cache is full. Consider increasing the cache size.")
    if not recommendations:
        recommendations.append("Normalization performance is optimal")
    return {"cache": stats, "normalization": _timer.metrics(), "recommendations": recommendations}
