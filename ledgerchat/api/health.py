from fastapi import APIRouter, Depends
from typing import Dict, Any

from ..core.ledger import LedgerGateway
from ..providers.classifier import IntentClassifier
from .dependencies import get_classifier, get_gateway

router = APIRouter()


@router.get("/healthz")
async def health_check(
    gateway: LedgerGateway = Depends(get_gateway),
    classifier: IntentClassifier = Depends(get_classifier),
) -> Dict[str, Any]:
    """Health check endpoint that verifies ledger and classifier status"""

    provider_status = {
        "ledger": await gateway.health_check(),
        "classifier": await classifier.health_check(),
    }

    available_providers = sum(
        1 for status in provider_status.values()
        if status["status"] == "healthy"
    )

    # Without a ledger session nothing can be executed
    ledger_ok = provider_status["ledger"]["status"] == "healthy"

    return {
        "status": "healthy" if ledger_ok and available_providers == len(provider_status) else "degraded",
        "providers": provider_status,
        "available_providers": available_providers,
        "total_providers": len(provider_status)
    }
