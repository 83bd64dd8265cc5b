"""
Proving backend factory.

Backends are imported lazily by dotted path, so selecting "snarkjs" never
imports anything rapidsnark-specific and vice versa.
"""

from __future__ import annotations

import importlib
from typing import Final

from .settings import ProverSettings
from .snark.prover import ProvingBackend

PROVER_REGISTRY: Final[dict[str, str]] = {
    "snarkjs": "achievement_zk.privacy_protocol.snark.prover.SnarkjsProver",
    "rapidsnark": "achievement_zk.privacy_protocol.snark.prover.RapidsnarkProver",
}


def _format_valid_options() -> str:
    return ", ".join(sorted(PROVER_REGISTRY.keys()))


def _normalize_prover_name(value: str | None, *, source: str) -> str | None:
    if value is None or value == "":
        return None

    if not isinstance(value, str) or value not in PROVER_REGISTRY:
        raise ValueError(
            f"Invalid prover name from {source}: {value!r}. "
            f"Valid options: {_format_valid_options()}"
        )

    return value


def _load_prover_class(prover_name: str) -> type:
    import_path = PROVER_REGISTRY[prover_name]
    module_path, _, class_name = import_path.rpartition(".")
    if not module_path or not class_name:
        raise ValueError(
            f"Invalid prover import path for {prover_name!r}: {import_path!r}"
        )

    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as exc:
        raise ImportError(
            f"Unable to import prover module {module_path!r} for {prover_name!r}"
        ) from exc

    try:
        prover_cls = getattr(module, class_name)
    except AttributeError as exc:
        raise ImportError(
            f"Prover class {class_name!r} not found in module {module_path!r}"
        ) from exc

    if not isinstance(prover_cls, type):
        raise TypeError(f"Prover reference {import_path!r} did not resolve to a class")

    if not issubclass(prover_cls, ProvingBackend):
        raise TypeError(
            f"Prover class {prover_cls.__name__!r} does not implement ProvingBackend"
        )

    return prover_cls


def _resolve_prover_name(settings: ProverSettings, override: str | None) -> str:
    resolved_override = _normalize_prover_name(override, source="override")
    if resolved_override is not None:
        return resolved_override

    resolved = _normalize_prover_name(settings.prover, source="settings")
    if resolved is None:
        raise ValueError(f"No prover configured. Valid options: {_format_valid_options()}")
    return resolved


def get_prover(
    settings: ProverSettings | None = None, *, override: str | None = None
) -> ProvingBackend:
    """
    Return the proving backend named by the settings.

    Args:
        settings: Prover settings; defaults to ProverSettings(), which reads
            ACHIEVEMENT_ZK_PROVER
        override: Optional prover name taking precedence over the settings

    Raises:
        ConfigurationError: If the default settings name an unknown prover.
        ValueError: If a prover name is not in the registry.
        ImportError: If the prover class cannot be imported.
        TypeError: If the prover class does not implement ProvingBackend.
    """
    if settings is None:
        settings = ProverSettings()
    prover_name = _resolve_prover_name(settings, override)
    prover_cls = _load_prover_class(prover_name)
    prover = prover_cls(
        snarkjs_command=settings.snarkjs_command,
        rapidsnark_command=settings.rapidsnark_command,
    )

    if not isinstance(prover, ProvingBackend):
        raise TypeError(f"Prover instance {prover!r} does not implement ProvingBackend")

    return prover
