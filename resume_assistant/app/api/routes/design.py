import logging

from fastapi import APIRouter

from resume_assistant.app.api.routes.route_models import DesignColorsRequest
from resume_assistant.app.design.customization import CustomizationResult, customize_colors

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/design", tags=["design"])


@router.post("/colors", response_model=CustomizationResult)
def update_colors(request: DesignColorsRequest) -> CustomizationResult:
    """Apply a color or font request. Unknown colors and fonts come back as warnings."""
    return customize_colors(request.message, request.current_scheme, request.current_fonts)
