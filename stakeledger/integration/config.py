"""
Stake ledger configuration.

`LedgerConfig` is a frozen dataclass validated at construction. It can be built
directly, from `STAKE_LEDGER_*` environment variables, or from a YAML file:

    chain_id: stake-net-1
    ledger_id: stake-ledger-main
    slash_sink: treasury
    max_synthesizer_id_len: 256
    require_low_s: true
    genesis:
      registry_public_key: "0x..."     # 64-byte secp256k1 point
      governance_public_key: "0x..."   # 48-byte BLS12-381 G1 point
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..state.canonical import is_strict_int, require_identifier
from ..state.stakes import MAX_SYNTHESIZER_ID_LEN


_LABEL_RE = re.compile(r"^[A-Za-z0-9._-]+$")

ENV_PREFIX = "STAKE_LEDGER_"


def _require_label(value: Any, *, name: str) -> str:
    # chain_id / ledger_id end up inside domain separation labels (ASCII, no ':').
    if not isinstance(value, str) or not value:
        raise TypeError(f"{name} must be a non-empty str")
    if len(value) > 64 or not _LABEL_RE.fullmatch(value):
        raise ValueError(f"{name} must be 1-64 chars of [A-Za-z0-9._-]")
    return value


@dataclass(frozen=True)
class LedgerConfig:
    chain_id: str = "stake-local"
    # Custody account: token allowances are granted to this id.
    ledger_id: str = "stake-ledger"
    # Receives slashed funds (burn address or treasury).
    slash_sink: str = "slash-sink"
    max_synthesizer_id_len: int = 256
    # Reject high-s ECDSA signatures (malleated twins of a valid signature).
    require_low_s: bool = True

    def __post_init__(self) -> None:
        _require_label(self.chain_id, name="chain_id")
        _require_label(self.ledger_id, name="ledger_id")
        require_identifier(self.slash_sink, name="slash_sink")
        if self.slash_sink == self.ledger_id:
            raise ValueError("slash_sink must differ from the custody account")
        if not is_strict_int(self.max_synthesizer_id_len) or self.max_synthesizer_id_len <= 0:
            raise ValueError("max_synthesizer_id_len must be a positive int")
        if self.max_synthesizer_id_len > MAX_SYNTHESIZER_ID_LEN:
            raise ValueError(f"max_synthesizer_id_len must be at most {MAX_SYNTHESIZER_ID_LEN}")
        if not isinstance(self.require_low_s, bool):
            raise TypeError("require_low_s must be a bool")


@dataclass(frozen=True)
class GenesisKeys:
    registry_public_key: str
    governance_public_key: str


def _bool_env(env: Mapping[str, str], name: str, *, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return bool(default)
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return bool(default)


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> LedgerConfig:
    env = os.environ if environ is None else environ
    defaults = LedgerConfig()

    def _get(key: str, default: str) -> str:
        raw = env.get(ENV_PREFIX + key, "")
        return raw.strip() or default

    max_len_raw = _get("MAX_SYNTHESIZER_ID_LEN", str(defaults.max_synthesizer_id_len))
    try:
        max_len = int(max_len_raw, 10)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}MAX_SYNTHESIZER_ID_LEN must be an integer: {max_len_raw!r}") from exc

    low_s = _bool_env(env, ENV_PREFIX + "REQUIRE_LOW_S", default=defaults.require_low_s)

    return LedgerConfig(
        chain_id=_get("CHAIN_ID", defaults.chain_id),
        ledger_id=_get("LEDGER_ID", defaults.ledger_id),
        slash_sink=_get("SLASH_SINK", defaults.slash_sink),
        max_synthesizer_id_len=max_len,
        require_low_s=low_s,
    )


_CONFIG_KEYS = frozenset({"chain_id", "ledger_id", "slash_sink", "max_synthesizer_id_len", "require_low_s"})


def config_from_mapping(obj: Mapping[str, Any]) -> tuple[LedgerConfig, Optional[GenesisKeys]]:
    if not isinstance(obj, Mapping):
        raise TypeError("config must be a mapping")
    extra = set(obj.keys()) - _CONFIG_KEYS - {"genesis"}
    if extra:
        raise ValueError(f"unknown config keys: {sorted(extra)}")
    config = LedgerConfig(**{k: obj[k] for k in _CONFIG_KEYS if k in obj})

    genesis_obj = obj.get("genesis")
    if genesis_obj is None:
        return config, None
    if not isinstance(genesis_obj, Mapping):
        raise TypeError("genesis must be a mapping")
    if set(genesis_obj.keys()) != {"registry_public_key", "governance_public_key"}:
        raise ValueError("genesis requires exactly registry_public_key and governance_public_key")
    for key in ("registry_public_key", "governance_public_key"):
        # Unquoted 0x... scalars load as YAML ints; keys must be quoted strings.
        if not isinstance(genesis_obj[key], str):
            raise TypeError(f"genesis.{key} must be a quoted hex string")
    genesis = GenesisKeys(
        registry_public_key=genesis_obj["registry_public_key"],
        governance_public_key=genesis_obj["governance_public_key"],
    )
    return config, genesis


def load_config(path: str | Path) -> tuple[LedgerConfig, Optional[GenesisKeys]]:
    """Load a YAML config file; returns the config and optional genesis keys."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        obj = {}
    return config_from_mapping(obj)
