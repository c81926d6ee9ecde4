"""
CONFIG ENGINE
Load, validate, and expose holdings and market data configuration

RESPONSIBILITIES:
- Load YAML configuration files
- Validate configuration integrity
- Expose read-only typed objects

RULES:
❌ No silent defaults for holdings
✅ Fail fast on invalid config
✅ Deterministic output
"""

import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.domain.models import HoldingStatic

_REQUIRED_HOLDING_FIELDS = ("id", "name", "sector", "purchase_price", "quantity")


@dataclass(frozen=True)
class HoldingUniverse:
    """Collection of all configured holdings"""
    holdings: List[HoldingStatic]
    names: List[str]

    def is_valid_name(self, name: str) -> bool:
        return name in self.names


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for holdings and market data settings
    """

    def __init__(self, config_dir: Path):
        """Initialize with config directory"""
        self.config_dir = Path(config_dir)
        self._holding_universe: Optional[HoldingUniverse] = None
        self._app_config: Optional[Dict] = None

    def load_all(self) -> None:
        """Load all configuration files"""
        self._load_holdings()
        self._load_app_config()

    def _read_yaml(self, filename: str) -> Dict:
        path = self.config_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return data or {}

    def _load_holdings(self) -> None:
        """Load holdings from holdings.yml"""
        data = self._read_yaml("holdings.yml")

        holdings = [
            self._parse_holding(index, raw)
            for index, raw in enumerate(data.get("holdings") or [])
        ]

        ids = [h.id for h in holdings]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate holding ids found in configuration")

        self._holding_universe = HoldingUniverse(
            holdings=holdings,
            names=[h.name for h in holdings],
        )

    @staticmethod
    def _parse_holding(index: int, raw: Any) -> HoldingStatic:
        if not isinstance(raw, dict):
            raise ValueError(f"Holding #{index} must be a mapping")

        missing = [key for key in _REQUIRED_HOLDING_FIELDS if raw.get(key) in (None, "")]
        if missing:
            raise ValueError(f"Holding #{index} missing fields: {', '.join(missing)}")

        purchase_price = float(raw["purchase_price"])
        if purchase_price < 0:
            raise ValueError(f"Holding {raw['name']}: purchase_price must be >= 0")

        quantity = raw["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValueError(f"Holding {raw['name']}: quantity must be a non-negative integer")

        return HoldingStatic(
            id=str(raw["id"]),
            name=str(raw["name"]).strip(),
            sector=str(raw["sector"]),
            purchase_price=purchase_price,
            quantity=quantity,
        )

    def _load_app_config(self) -> None:
        """Load application settings from app.yml"""
        self._app_config = self._read_yaml("app.yml")

    # ------------------------------------------------------------------
    # PUBLIC ACCESSORS
    # ------------------------------------------------------------------

    @property
    def holding_universe(self) -> HoldingUniverse:
        if self._holding_universe is None:
            raise RuntimeError("Configuration not loaded")
        return self._holding_universe

    @property
    def holdings(self) -> List[HoldingStatic]:
        return list(self.holding_universe.holdings)

    def get_app_setting(self, section: str, key: Optional[str] = None, default: Any = None) -> Any:
        if self._app_config is None:
            raise RuntimeError("Configuration not loaded")
        value = self._app_config.get(section, {})
        if key is None:
            return value if value is not None else default
        return value.get(key, default)
