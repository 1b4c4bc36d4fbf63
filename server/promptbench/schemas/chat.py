from __future__ import annotations
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class Message(BaseModel):
    role: str = Field(..., pattern=r"^(user|assistant|system)$")
    content: str


class ProviderConfig(BaseModel):
    """One OpenAI-compatible backend. Treated as an immutable snapshot per request."""

    id: str
    name: str = ""
    base_url: str = Field(..., alias="baseUrl")
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    models: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("api_key")
    @classmethod
    def _blank_key_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("models")
    @classmethod
    def _no_duplicate_models(cls, v: List[str]) -> List[str]:
        seen = set()
        for model in v:
            if model in seen:
                raise ValueError(f"duplicate model id: {model}")
            seen.add(model)
        return v


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class StreamIncrement(BaseModel):
    content: Optional[str] = None
    usage: Optional[Usage] = None
    # Terminal: nothing follows an increment carrying an error
    error: Optional[str] = None


class CompletionResult(BaseModel):
    content: str = ""
    usage: Optional[Usage] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ModelListResult(BaseModel):
    success: bool
    models: Optional[List[str]] = None
    error: Optional[str] = None


class ProbeResult(BaseModel):
    provider_id: str
    success: bool
    message: str


class ReasoningSplit(BaseModel):
    thought: Optional[str] = None
    content: str = ""


class TemplateRequest(BaseModel):
    system_prompt: str = Field(default="", alias="systemPrompt")
    user_prompt: str = Field(default="", alias="userPrompt")
    variables: Dict[str, str] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class TemplateReport(BaseModel):
    variables: Dict[str, str]
    resolved_system: str
    resolved_user: str
    raw_tokens: int
    resolved_tokens: int


class GenerateRequest(TemplateRequest):
    config: ProviderConfig
    model: str


class ProviderRequest(BaseModel):
    config: ProviderConfig


class ProbeAllRequest(BaseModel):
    configs: List[ProviderConfig]
