"""
Application configuration
"""
from typing import List

from pydantic_settings import BaseSettings

from sp_resource.policy.profile import ResourcePolicy


class Settings(BaseSettings):
    """Application settings"""
    
    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080
    API_TITLE: str = "Security Profile Resource API"
    API_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    
    # Secure virtual database (SQLite)
    SP_DB_PATH: str = "/var/lib/sp_resource/secure_resources.db"
    
    # Security profile policy
    SP_POLICY_ID: str = "oic-sec-sp-v1"
    SP_CREDENTIAL_PROFILES: List[str] = ["oic.sec.sp.black", "oic.sec.sp.blue"]
    SP_INITIAL_CBOR_SIZE: int = 512
    SP_MAX_CBOR_SIZE: int = 4400
    
    def policy(self) -> ResourcePolicy:
        """Resource policy built from these settings"""
        return ResourcePolicy(
            policy_id=self.SP_POLICY_ID,
            credential_profiles=frozenset(self.SP_CREDENTIAL_PROFILES),
            initial_cbor_size=self.SP_INITIAL_CBOR_SIZE,
            max_cbor_size=self.SP_MAX_CBOR_SIZE,
        )
    
    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
