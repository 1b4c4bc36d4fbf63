from fastapi import APIRouter

from promptbench.core import tokens
from promptbench.core.templates import build_variables, resolve
from promptbench.schemas.chat import TemplateReport, TemplateRequest

router = APIRouter()


@router.post("/templates/resolve", response_model=TemplateReport)
def resolve_templates(request: TemplateRequest) -> TemplateReport:
    """Detected variables, substituted prompts, and token estimates before and after."""
    variables = build_variables([request.system_prompt, request.user_prompt], request.variables)
    resolved_system = resolve(request.system_prompt, variables)
    resolved_user = resolve(request.user_prompt, variables)
    return TemplateReport(
        variables=variables,
        resolved_system=resolved_system,
        resolved_user=resolved_user,
        raw_tokens=tokens.estimate(request.system_prompt + request.user_prompt),
        resolved_tokens=tokens.estimate(resolved_system + resolved_user),
    )
