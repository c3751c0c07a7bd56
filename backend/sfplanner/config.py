from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional, List


class Settings(BaseSettings):
    """
    Planner settings.
    All settings can be overridden via environment variables.
    """
    
    # =============================================================================
    # DESCRIBE CACHE
    # =============================================================================
    describe_cache_backend: str = "memory"  # memory | redis
    describe_cache_ttl_seconds: int = 600  # 10 minutes
    redis_url: str = "redis://localhost:6379"
    redis_password: Optional[str] = None
    
    # =============================================================================
    # ENTITY RESOLUTION
    # =============================================================================
    fuzzy_threshold: float = 0.6
    max_suggestions: int = 5
    disambiguation_threshold: float = 0.9
    strong_match_threshold: float = 0.7
    min_keyword_length: int = 3
    
    # Deployment-specific ranking weights. These are tuned per org and
    # should be recalibrated when the naming conventions change.
    generic_custom_term_boost: float = 0.8
    preferred_namespace: Optional[str] = None  # e.g. "owsc__"
    namespace_boost: float = 0.3
    hint_phrases: str = "object item,found in,located in"
    hint_name_term: str = "item"
    hint_phrase_boost: float = 2.0
    primary_object_hint: Optional[str] = None  # e.g. "owsc__Item__c"
    primary_object_phrases: str = " items,items ,item "
    primary_object_boost: float = 3.0
    
    # =============================================================================
    # USER PREFERENCES
    # =============================================================================
    preference_session_ttl_seconds: int = 2700  # 45 minutes
    preference_history_limit: int = 50
    
    # =============================================================================
    # SCHEMA / PLANNING
    # =============================================================================
    max_path_depth: int = 3
    expansion_depth: int = 2
    default_date_range: str = "LAST_N_MONTHS:12"
    default_row_limit: int = 200
    
    # =============================================================================
    # LOGGING
    # =============================================================================
    log_level: str = "INFO"
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
    
    # =============================================================================
    # COMPUTED PROPERTIES
    # =============================================================================
    
    @property
    def hint_phrases_list(self) -> List[str]:
        return [p.strip() for p in self.hint_phrases.split(",") if p.strip()]
    
    @property
    def primary_object_phrases_list(self) -> List[str]:
        # Leading/trailing spaces are significant in these phrases
        return [p for p in self.primary_object_phrases.split(",") if p.strip()]
    
    @property
    def redis_url_safe(self) -> str:
        """Return Redis URL with password masked for logging"""
        parts = self.redis_url.split("@")
        if len(parts) > 1:
            creds = parts[0].split(":")
            if len(creds) > 2:
                return f"{creds[0]}:{creds[1]}:****@{parts[1]}"
        return self.redis_url


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reloading .env on every call.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Force reload settings from .env file.
    Useful for testing or when environment changes.
    """
    get_settings.cache_clear()
    return get_settings()


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

def validate_critical_settings() -> list[str]:
    """
    Validate settings that would make resolution misbehave.
    Returns list of problems found.
    """
    settings = get_settings()
    errors = []
    
    if not 0.0 < settings.fuzzy_threshold <= 1.0:
        errors.append("FUZZY_THRESHOLD must be in (0, 1]")
    if settings.max_suggestions < 1:
        errors.append("MAX_SUGGESTIONS must be at least 1")
    if settings.max_path_depth < 0:
        errors.append("MAX_PATH_DEPTH must not be negative")
    if settings.describe_cache_backend not in ("memory", "redis"):
        errors.append("DESCRIBE_CACHE_BACKEND must be 'memory' or 'redis'")
    if settings.describe_cache_backend == "redis" and not settings.redis_url:
        errors.append("REDIS_URL not set while DESCRIBE_CACHE_BACKEND=redis")
    
    return errors
