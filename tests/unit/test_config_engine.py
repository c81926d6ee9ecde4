from pathlib import Path

import pytest

from app.domain.services.config_engine import ConfigEngine

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config"

APP_YML = """
market_data:
  default_exchange: NSE
  google:
    enabled: false
"""


def _write(tmp_path, holdings_yml, app_yml=APP_YML):
    (tmp_path / "holdings.yml").write_text(holdings_yml)
    (tmp_path / "app.yml").write_text(app_yml)
    engine = ConfigEngine(tmp_path)
    engine.load_all()
    return engine


def test_repository_config_loads():
    engine = ConfigEngine(REPO_CONFIG)
    engine.load_all()

    holdings = engine.holdings
    assert len(holdings) == 26
    assert holdings[0].name == "HDFC Bank"
    assert holdings[0].purchase_price == 1490.0
    assert holdings[0].quantity == 50
    assert engine.get_app_setting("market_data", "default_exchange") == "NSE"


def test_holdings_parsed_in_order(tmp_path):
    engine = _write(
        tmp_path,
        """
holdings:
  - {id: 1, name: " Tata Power ", sector: Power, purchase_price: 224, quantity: 225}
  - {id: "2", name: Suzlon, sector: Power, purchase_price: 44.5, quantity: 0}
""",
    )

    first, second = engine.holdings
    assert first.id == "1"
    assert first.name == "Tata Power"
    assert first.purchase_price == 224.0
    assert second.quantity == 0
    assert engine.holding_universe.is_valid_name("Suzlon")
    assert engine.get_app_setting("market_data", "google") == {"enabled": False}


@pytest.mark.parametrize(
    "holdings_yml, message",
    [
        ("holdings:\n  - {id: 1, sector: Power, purchase_price: 1, quantity: 1}\n", "missing fields: name"),
        ("holdings:\n  - {id: 1, name: A, sector: P, purchase_price: -1, quantity: 1}\n", "purchase_price"),
        ("holdings:\n  - {id: 1, name: A, sector: P, purchase_price: 1, quantity: 1.5}\n", "quantity"),
        ("holdings:\n  - {id: 1, name: A, sector: P, purchase_price: 1, quantity: -2}\n", "quantity"),
        (
            "holdings:\n  - {id: 1, name: A, sector: P, purchase_price: 1, quantity: 1}\n"
            "  - {id: 1, name: B, sector: P, purchase_price: 1, quantity: 1}\n",
            "Duplicate",
        ),
    ],
)
def test_invalid_holdings_fail_fast(tmp_path, holdings_yml, message):
    with pytest.raises(ValueError, match=message):
        _write(tmp_path, holdings_yml)


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigEngine(tmp_path).load_all()


def test_accessors_require_load(tmp_path):
    with pytest.raises(RuntimeError):
        ConfigEngine(tmp_path).holdings
