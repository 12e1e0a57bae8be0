"""Ledger-wide constants."""

HBAR_SYMBOL = "HBAR"
HBAR_DECIMALS = 8
TINYBARS_PER_HBAR = 10 ** HBAR_DECIMALS

# Spending ceilings applied to every session; never tunable per call
MAX_TRANSACTION_FEE_TINYBARS = 100 * TINYBARS_PER_HBAR
MAX_QUERY_PAYMENT_TINYBARS = 50 * TINYBARS_PER_HBAR

TRANSACTION_VALID_DURATION_SECONDS = 120
DEFAULT_NODE_ACCOUNT_ID = "0.0.3"

SUCCESS_STATUS = "SUCCESS"
PRECHECK_OK = "OK"

MIRROR_NODE_URLS = {
    "mainnet": "https://mainnet-public.mirrornode.hedera.com",
    "testnet": "https://testnet.mirrornode.hedera.com",
    "previewnet": "https://previewnet.mirrornode.hedera.com",
}

