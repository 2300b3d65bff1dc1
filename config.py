import logging
import os

APP_TITLE = "Milk Collection Command Center"
APP_TAGLINE = "Digitize procurement, reduce leakages and keep settlements on track."

# Local key/value store (one SQLite file per client machine)
STORAGE_PATH = os.getenv("DAIRY_STORAGE_PATH", "dairy_procurement.db")

FARMERS_KEY = "milk-farmers"
COLLECTIONS_KEY = "milk-collections"
PAYMENTS_KEY = "milk-payments"

TOP_PERFORMERS_LIMIT = 3

# Fixed formatting locale
LOCALE = "en-IN"
CURRENCY_SYMBOL = "₹"

# Form defaults
DEFAULT_FARMER_RATE = 34.0
DEFAULT_COLLECTION_QUANTITY = 10.0
DEFAULT_COLLECTION_FAT = 3.8
DEFAULT_COLLECTION_SNF = 8.3
DEFAULT_COLLECTION_RATE = 34.0

LOG_LEVEL = os.getenv("DAIRY_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level=None):
    """Configure root logging once for the Streamlit process."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
