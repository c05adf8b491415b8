"""
PricePilot Configuration

Environment-driven settings grouped by concern. Every PRICEPILOT_* variable
is read here and nowhere else; engine components receive the resolved
dataclasses through their constructors.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Optional


DEFAULT_ORACLE_URL = "http://localhost:3001"
DEFAULT_DROP_THRESHOLD = Decimal("10")  # percent
DEFAULT_CIRCUIT_NAME = "priceProtection"
LOCAL_CHAIN_ID = 31337


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


@dataclass(frozen=True)
class OracleConfig:
    base_url: str = DEFAULT_ORACLE_URL
    drop_threshold_percent: Decimal = DEFAULT_DROP_THRESHOLD

    def endpoint(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"


@dataclass(frozen=True)
class ProverConfig:
    """Location of compiled circuit artifacts and the Node toolchain."""
    assets_base: Path = field(default_factory=lambda: Path("zk"))
    circuit_name: str = DEFAULT_CIRCUIT_NAME
    node_bin: str = "node"
    snarkjs_bin: str = "snarkjs"
    node_modules: Optional[Path] = None
    strict_encoding: bool = False

    @property
    def wasm_path(self) -> Path:
        return self.assets_base / f"{self.circuit_name}.wasm"

    @property
    def zkey_path(self) -> Path:
        return self.assets_base / f"{self.circuit_name}_final.zkey"

    @property
    def verification_key_path(self) -> Path:
        return self.assets_base / f"{self.circuit_name}_verification_key.json"


@dataclass(frozen=True)
class LedgerConfig:
    chain_id: Optional[int] = None
    vault_address: str = ""
    token_address: str = ""
    verifier_address: str = ""
    network_label: str = "unknown"

    @property
    def network(self) -> str:
        if self.chain_id == LOCAL_CHAIN_ID:
            return "anvil-local"
        return self.network_label


@dataclass(frozen=True)
class StorageConfig:
    base_dir: Path = field(default_factory=lambda: Path.home() / ".pricepilot")
    catalog_file: str = "products.json"

    @property
    def policies_dir(self) -> Path:
        return self.base_dir / "policies"

    @property
    def catalog_path(self) -> Path:
        return self.base_dir / self.catalog_file


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"


@dataclass
class PricePilotConfig:
    oracle: OracleConfig = field(default_factory=OracleConfig)
    prover: ProverConfig = field(default_factory=ProverConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "PricePilotConfig":
        oracle = OracleConfig(
            base_url=os.getenv("PRICEPILOT_ORACLE_URL", DEFAULT_ORACLE_URL),
            drop_threshold_percent=Decimal(
                os.getenv("PRICEPILOT_CLAIM_DROP_THRESHOLD", str(DEFAULT_DROP_THRESHOLD))
            ),
        )

        node_modules = os.getenv("PRICEPILOT_NODE_MODULES")
        prover = ProverConfig(
            assets_base=Path(os.getenv("PRICEPILOT_ZK_ASSETS_BASE", "zk")),
            circuit_name=os.getenv("PRICEPILOT_CIRCUIT_NAME", DEFAULT_CIRCUIT_NAME),
            node_bin=os.getenv("PRICEPILOT_NODE_BIN", "node"),
            snarkjs_bin=os.getenv("PRICEPILOT_SNARKJS_BIN", "snarkjs"),
            node_modules=Path(node_modules) if node_modules else None,
            strict_encoding=_env_bool("PRICEPILOT_STRICT_ENCODING", False),
        )

        chain_id = os.getenv("PRICEPILOT_CHAIN_ID")
        ledger = LedgerConfig(
            chain_id=int(chain_id) if chain_id else None,
            vault_address=os.getenv("PRICEPILOT_VAULT_ADDRESS", ""),
            token_address=os.getenv("PRICEPILOT_PAYMENT_TOKEN", ""),
            verifier_address=os.getenv("PRICEPILOT_VERIFIER_ADDRESS", ""),
            network_label=os.getenv("PRICEPILOT_NETWORK", "unknown"),
        )

        store_dir = os.getenv("PRICEPILOT_STORE_DIR")
        storage = StorageConfig(
            base_dir=Path(store_dir) if store_dir else Path.home() / ".pricepilot",
        )

        log = LogConfig(level=os.getenv("PRICEPILOT_LOG_LEVEL", "INFO"))

        return cls(oracle=oracle, prover=prover, ledger=ledger, storage=storage, log=log)
