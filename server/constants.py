"""Centralized constants for cache types, TTLs and dashboard keys.

Single source of truth for values shared by models, services and routers.
"""

from typing import Dict, FrozenSet

# =============================================================================
# CACHE TYPES
# =============================================================================

CACHE_TYPE_API_RESPONSE = 'api_response'
CACHE_TYPE_WORKFLOW_RESULT = 'workflow_result'
CACHE_TYPE_USER_DATA = 'user_data'
CACHE_TYPE_SYSTEM_DATA = 'system_data'

CACHE_TYPES: FrozenSet[str] = frozenset([
    CACHE_TYPE_API_RESPONSE,
    CACHE_TYPE_WORKFLOW_RESULT,
    CACHE_TYPE_USER_DATA,
    CACHE_TYPE_SYSTEM_DATA,
])

# Default time-to-live in minutes, selected by entry type
CACHE_TTL_MINUTES: Dict[str, int] = {
    CACHE_TYPE_API_RESPONSE: 30,
    CACHE_TYPE_WORKFLOW_RESULT: 120,
    CACHE_TYPE_USER_DATA: 60,
    CACHE_TYPE_SYSTEM_DATA: 240,
}

DEFAULT_CACHE_TTL_MINUTES = 60

# =============================================================================
# DASHBOARD
# =============================================================================

SYSTEM_HEALTH_CACHE_KEY = 'system_health'
USER_STATS_TTL_MINUTES = 5
SYSTEM_HEALTH_TTL_MINUTES = 1


def user_stats_cache_key(user_id: int) -> str:
    """Logical cache endpoint for a user's dashboard statistics."""
    return f"user_stats_{user_id}"


# =============================================================================
# MAINTENANCE THRESHOLDS
# =============================================================================

# Health POST recommends a cleanup once either count passes its threshold
CLEANUP_EXPIRED_CACHE_THRESHOLD = 100
CLEANUP_INACTIVE_SESSIONS_THRESHOLD = 50

# =============================================================================
# SESSION ACTIVITY
# =============================================================================

SESSION_ACTIONS: FrozenSet[str] = frozenset([
    'login',
    'logout',
    'api_call',
    'page_view',
    'workflow_run',
])
