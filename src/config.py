import importlib
import os
from dataclasses import dataclass, field
from pathlib import Path

from chain.multicall import MULTICALL3_ADDRESS
from core.base_types import Address
from swap.protocols import DRAGONSWAP, SAILOR, ProtocolDescriptor
from swap.responses import DEFAULT_EXPLORER_TX_URL

_ENV_LOADED = False

SEI_CHAIN_ID = 1329
DEFAULT_RPC_URL = "https://evm-rpc.sei-apis.com"


def _load_env() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    try:
        dotenv = importlib.import_module("dotenv")
    except Exception as exc:  # pragma: no cover
        raise SystemExit("python-dotenv is required (pip install -e .)") from exc
    env_path = Path(__file__).resolve().parents[1] / ".env"
    dotenv.load_dotenv(dotenv_path=env_path)
    _ENV_LOADED = True


def get_env(
    name: str, default: str | None = None, required: bool = False
) -> str | None:
    _load_env()
    value = os.environ.get(name, default)
    if required and (value is None or value == ""):
        raise SystemExit(f"{name} env var is required")
    return value


def _env_bool(name: str, default: bool) -> bool:
    value = get_env(name)
    if value is None or value.strip() == "":
        return default
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise SystemExit(f"{name} must be a boolean, got {value!r}")


def _env_int(name: str, default: int) -> int:
    value = get_env(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise SystemExit(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = get_env(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise SystemExit(f"{name} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class SwapSettings:
    """Immutable runtime configuration, built once at startup."""

    rpc_urls: tuple[str, ...] = (DEFAULT_RPC_URL,)
    chain_id: int = SEI_CHAIN_ID
    multicall_address: str = MULTICALL3_ADDRESS
    protocols: tuple[ProtocolDescriptor, ...] = field(
        default_factory=lambda: (DRAGONSWAP, SAILOR)
    )
    simulate_before_send: bool = True
    explorer_tx_url: str = DEFAULT_EXPLORER_TX_URL
    rpc_timeout_seconds: int = 30


def _protocol_from_env(base: ProtocolDescriptor, quote_timeout: float | None) -> ProtocolDescriptor:
    prefix = base.key.upper()
    router = get_env(f"{prefix}_ROUTER_ADDRESS")
    try:
        router_address = Address.from_string(router) if router else base.router_address
    except ValueError as exc:
        raise SystemExit(f"{prefix}_ROUTER_ADDRESS is not a valid address") from exc
    return base.with_overrides(
        enabled=_env_bool(f"{prefix}_ENABLED", base.enabled),
        router_address=router_address,
        api_url=get_env(f"{prefix}_API_URL") or base.api_url,
        quote_timeout_seconds=(
            quote_timeout if quote_timeout is not None else base.quote_timeout_seconds
        ),
    )


def load_settings() -> SwapSettings:
    """Build ``SwapSettings`` from the environment (and ``.env``)."""
    raw_urls = get_env("SEI_RPC_URLS") or DEFAULT_RPC_URL
    rpc_urls = tuple(url.strip() for url in raw_urls.split(",") if url.strip())
    if not rpc_urls:
        raise SystemExit("SEI_RPC_URLS must list at least one endpoint")

    timeout_raw = get_env("QUOTE_TIMEOUT_SECONDS")
    quote_timeout = (
        _env_float("QUOTE_TIMEOUT_SECONDS", 0.0) if timeout_raw else None
    )
    if quote_timeout is not None and quote_timeout <= 0:
        raise SystemExit("QUOTE_TIMEOUT_SECONDS must be positive")

    multicall = get_env("MULTICALL3_ADDRESS") or MULTICALL3_ADDRESS
    try:
        Address.from_string(multicall)
    except ValueError as exc:
        raise SystemExit("MULTICALL3_ADDRESS is not a valid address") from exc

    return SwapSettings(
        rpc_urls=rpc_urls,
        chain_id=_env_int("CHAIN_ID", SEI_CHAIN_ID),
        multicall_address=multicall,
        protocols=(
            _protocol_from_env(DRAGONSWAP, quote_timeout),
            _protocol_from_env(SAILOR, quote_timeout),
        ),
        simulate_before_send=_env_bool("SIMULATE_BEFORE_SEND", True),
        explorer_tx_url=get_env("EXPLORER_TX_URL") or DEFAULT_EXPLORER_TX_URL,
        rpc_timeout_seconds=_env_int("RPC_TIMEOUT_SECONDS", 30),
    )
