# SwapStats Configuration

from dotenv import load_dotenv
import os

# Load environment variables from .env file
load_dotenv()


# DEX identifiers as stored in the swaps.dex_key column
DEX_KEYS = {
    'raydium': 0,
    'pump': 1,
    'jupiter': 2,
}

# Reverse lookup: dex_key -> name
DEX_NAMES = {key: name for name, key in DEX_KEYS.items()}

DEFAULT_DEXES = ['raydium', 'jupiter', 'pump']

# Reserved token refs for the base assets (SOL / wrapped SOL).
# Buy/sell direction is defined against these and they never appear in token stats.
BASE_TOKEN_REFS = frozenset({2, 16})

# Ref 0 marks a swap leg the indexer could not resolve
NULL_TOKEN_REF = 0

# Supply assumed when neither the directory nor the RPC node knows it
FALLBACK_SUPPLY = 1_000_000_000

# Store client retry policy
MAX_QUERY_ATTEMPTS = 5
RETRY_DELAY_SECONDS = 1.0

# Address/token sets larger than this are split into several queries
QUERY_BATCH_SIZE = 500

TOP_TOKENS_LIMIT = 10

# Data warehouse connection (libpq DSN)
DATA_WAREHOUSE_DB = os.getenv(
    'DATA_WAREHOUSE_DB',
    "dbname=swapstats user=swapstats password=swapstats host=localhost port=5432"
)
DB_POOL_MIN = int(os.getenv('DB_POOL_MIN', '1'))
DB_POOL_MAX = int(os.getenv('DB_POOL_MAX', '10'))
# Server side statement timeout; a cancelled statement is retried like a dropped connection
DB_STATEMENT_TIMEOUT_MS = int(os.getenv('DB_STATEMENT_TIMEOUT_MS', '30000'))

# Solana RPC endpoint used for getTokenSupply
SOLANA_RPC_URL = os.getenv('SOLANA_RPC_URL', 'https://api.mainnet-beta.solana.com')
RPC_TIMEOUT = float(os.getenv('RPC_TIMEOUT', '10'))  # seconds

# Supply lookups are cached briefly and shared across requests
SUPPLY_CACHE_TTL = float(os.getenv('SUPPLY_CACHE_TTL', '10'))  # seconds
