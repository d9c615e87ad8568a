# backend/studio/routers/tools.py

from fastapi import APIRouter

from ..schemas.tools import MacroRequest, MacroResponse
from ..services.nutrition import calculate_macros

router = APIRouter(prefix="/tools", tags=["tools"])


@router.post("/macros", response_model=MacroResponse)
def macros(data: MacroRequest):
    return calculate_macros(**data.model_dump())
