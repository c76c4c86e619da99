# isthisnormal/routes/symptoms_routes.py
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from isthisnormal.services import symptom_analysis
from isthisnormal.services.gateway import GatewayClient
from isthisnormal.services.rate_limit import RateLimiter, client_key
from isthisnormal.utils.exceptions import ClientValidationError

router = APIRouter(tags=["symptoms"])
logger = logging.getLogger("isthisnormal")


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_gateway(request: Request) -> GatewayClient:
    return request.app.state.gateway


@router.post("/analyze-symptom", status_code=status.HTTP_200_OK)
async def analyze_symptom(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    gateway: GatewayClient = Depends(get_gateway),
):
    """Answer one symptom question.

    Accepts: {"symptomText": "...", "bodyArea"?: "...", "duration"?: "...", "ageRange"?: "..."}
    Returns: the SymptomAnalysis JSON, or {"error": "..."} with 400/402/429/500.
    """
    # every request counts against the budget, valid or not
    await limiter.acheck(client_key(request.headers))

    try:
        payload = await request.json()
    except ValueError:
        raise ClientValidationError("Invalid request body")

    outcome = await symptom_analysis.analyze(payload, gateway, rng=getattr(request.app.state, "rng", None))
    return JSONResponse(status_code=status.HTTP_200_OK, content=outcome.analysis.to_wire())
