"""Configuration module for the NOTAM watcher."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Logging level
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Software Version
    VERSION = os.getenv('VERSION', 'v0.0.0')

    # Database
    DATABASE_PATH = os.getenv('DATABASE_PATH', '/app/data/notamwatch.db')

    # NOTAM search endpoint
    NOTAM_API_URL = os.getenv('NOTAM_API_URL', 'https://notams.aim.faa.gov/notamSearch/search')

    # Regions seeded into settings on first start (ICAO codes)
    REGIONS = [r.strip().upper() for r in os.getenv('REGIONS', 'LROP').split(',') if r.strip()]
    DEFAULT_REGION = os.getenv('DEFAULT_REGION', 'LROP')

    # Fetching
    REQUEST_TIMEOUT_SECONDS = float(os.getenv('REQUEST_TIMEOUT_SECONDS', '30'))
    MAX_RETRIES = int(os.getenv('MAX_RETRIES', '3'))
    RETRY_DELAYS = [float(d) for d in os.getenv('RETRY_DELAYS', '1,2,4').split(',') if d.strip()]
    MAX_CONCURRENT_REQUESTS = int(os.getenv('MAX_CONCURRENT_REQUESTS', '16'))

    # Retention
    SNAPSHOT_STALE_HOURS = int(os.getenv('SNAPSHOT_STALE_HOURS', '24'))
    SNAPSHOT_RETENTION_DAYS = int(os.getenv('SNAPSHOT_RETENTION_DAYS', '7'))
    NOTIFIED_RETENTION_DAYS = int(os.getenv('NOTIFIED_RETENTION_DAYS', '7'))
    CHANGE_LOG_CAPACITY = int(os.getenv('CHANGE_LOG_CAPACITY', '100'))

    # Only NOTAMs issued this recently can trigger an immediate critical alert
    CRITICAL_RECENT_DAYS = int(os.getenv('CRITICAL_RECENT_DAYS', '3'))

    # ntfy push notifications (disabled when empty)
    NTFY_URL = os.getenv('NTFY_URL', '')
    NTFY_TIMEOUT_SECONDS = float(os.getenv('NTFY_TIMEOUT_SECONDS', '10'))

    @classmethod
    def validate(cls):
        """Validate required configuration."""
        if not cls.NOTAM_API_URL:
            raise ValueError("NOTAM_API_URL configuration is required")
        if not cls.DATABASE_PATH:
            raise ValueError("DATABASE_PATH configuration is required")
        if cls.MAX_RETRIES < 1:
            raise ValueError("MAX_RETRIES must be at least 1")
        if len(cls.RETRY_DELAYS) < cls.MAX_RETRIES - 1:
            raise ValueError("RETRY_DELAYS must cover every retry")
        if cls.MAX_CONCURRENT_REQUESTS < 1:
            raise ValueError("MAX_CONCURRENT_REQUESTS must be at least 1")
        return True
