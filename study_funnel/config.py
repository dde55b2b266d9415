"""
Centralized configuration: every env var the service reads.

LOG_LEVEL and LOG_FORMAT are read by logging_config.configure_logging().
"""
import os


# ── Redis (circuit breaker state) ────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── Database ─────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///study.db')

# ── Auth ─────────────────────────────────────────────────────────────────────
API_TOKEN = os.getenv('API_TOKEN')

# ── Power Automate (outbound participant emails) ─────────────────────────────
POWER_AUTOMATE_WEBHOOK_URL = os.getenv('POWER_AUTOMATE_WEBHOOK_URL')

# ── SurveyMonkey ─────────────────────────────────────────────────────────────
SURVEYMONKEY_TOKEN = os.getenv('SURVEYMONKEY_TOKEN')
SURVEY_ID = os.getenv('SURVEY_ID')
SURVEYMONKEY_API_URL = os.getenv('SURVEYMONKEY_API_URL', 'https://api.surveymonkey.ca')

# ── Survey polling ───────────────────────────────────────────────────────────
SURVEY_POLL_ENABLED = os.getenv('SURVEY_POLL_ENABLED', 'false').lower() in ('1', 'true', 'yes')
SURVEY_POLL_INTERVAL_MINUTES = int(os.getenv('SURVEY_POLL_INTERVAL_MINUTES', '60'))

# ── Bookings ─────────────────────────────────────────────────────────────────
LOCAL_TIMEZONE = os.getenv('LOCAL_TIMEZONE', 'America/New_York')
