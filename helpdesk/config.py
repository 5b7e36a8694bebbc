"""
Citizen Helpdesk Intake - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # FastAPI
    fastapi_env: str = "development"
    fastapi_host: str = "0.0.0.0"
    fastapi_port: int = 8000

    # LLM (classification + domain responders)
    openai_api_key: str = ""
    classifier_model: str = "gpt-4.1-mini"
    specialist_model: str = "gpt-4.1"
    info_model: str = "gpt-4.1-mini"
    responder_max_tool_rounds: int = 5

    # Supabase (case-tracking store + contact directory)
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    supabase_db_password: str = ""
    supabase_db_host: str = ""
    supabase_db_port: int = 6543
    supabase_db_name: str = "postgres"
    supabase_db_user: str = ""

    # Tickets
    agent_account_id: int = 1
    ticket_channel: str = "whatsapp"
    default_client_name: str = "Cliente WhatsApp"
    folio_sequence_strategy: str = "atomic"  # atomic | last_folio
    enforce_ticket_transitions: bool = True
    local_timezone: str = "America/Mexico_City"

    # Billing backend (legacy SOAP services)
    billing_api_base: str = "https://aquacis-cf-int.ceaqueretaro.gob.mx/Comercial/services"
    billing_ws_username: str = "WSGESTIONDEUDA"
    billing_ws_password: str = "WSGESTIONDEUDA"
    billing_explotacion: str = "12"

    # Outbound HTTP
    partner_domain: str = "ceaqueretaro.gob.mx"
    partner_proxy_url: str = ""  # e.g. http://10.128.0.7:3128
    http_timeout_seconds: float = 30.0
    http_max_retries: int = 3
    http_retry_base_delay: float = 1.0

    # Sessions
    session_ttl_seconds: int = 3600
    session_sweep_interval_seconds: int = 300
    session_history_limit: int = 20

    # Utility billing hand-off (external specialised channel)
    utility_billing_handoff_enabled: bool = True
    utility_handoff_name: str = "CEA Querétaro - Agua Potable"
    utility_handoff_phone: str = "4424700013"
    utility_handoff_organization: str = "Comisión Estatal de Aguas"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    @property
    def supabase_write_key(self) -> str:
        """Service role key when present, anon key otherwise"""
        return self.supabase_service_role_key or self.supabase_key


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
