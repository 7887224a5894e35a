"""Defaults shared by the token store, sync coordinator and config loaders."""

NATIVE_CONTRACT = "0x0000000000000000000000000000000000000000"
DEFAULT_SERVER_NAME = "Ethereum"
DEFAULT_NATIVE_SYMBOL = "ETH"
DEFAULT_NATIVE_DECIMALS = 18
DEFAULT_CURRENCY = "USD"

DEFAULT_REFRESH_INTERVAL = 30.0
DEFAULT_MAX_CONCURRENCY = 8
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_RETRIES = 2

EMPTY_BALANCE_TEXT = "--"
