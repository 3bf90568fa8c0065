"""Transaction listing and classification endpoints"""

import logging
from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from budget_gateway.api.v1.schemas import (
    ClassificationFailureItem,
    ClassificationResponse,
    ClassifyAllResponse,
    ManualCategoryRequest,
    TransactionItem,
    TransactionListResponse,
)
from budget_gateway.api.dependencies import get_classifier, get_request_id, get_store
from budget_gateway.domain.exceptions import (
    ClassificationUnavailable,
    ConfigMissing,
    ConfirmedTransactionError,
    StoreConflict,
    TransactionNotFound,
    UnknownCategoryError,
)
from budget_gateway.domain.ports import TransactionStore
from budget_gateway.services.classifier import Classifier

router = APIRouter()


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    principal_id: str = Query(..., min_length=1, description="Principal identifier"),
    store: TransactionStore = Depends(get_store),
):
    """Stored transactions of a principal in insertion order"""
    items = [
        TransactionItem(
            id=t.id,
            external_id=t.external_id,
            description=t.description,
            amount=t.amount,
            direction=t.direction,
            value_date=t.value_date,
            category=t.category,
            review_state=t.review_state,
            rationale=t.rationale,
        )
        for t in store.select_transactions(principal_id)
    ]
    return TransactionListResponse(principal_id=principal_id, transactions=items)


@router.post("/transactions/classify-all", response_model=ClassifyAllResponse)
async def classify_all(
    request: Request,
    principal_id: str = Query(..., min_length=1, description="Principal identifier"),
    classifier: Classifier = Depends(get_classifier),
):
    """Classify every uncategorized transaction; failures are listed, not raised"""
    try:
        report = await classifier.classify_all(principal_id)
    except (StoreConflict, ConfigMissing) as e:
        logging.error(f"Classification pass aborted: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ClassifyAllResponse(
        principal_id=principal_id,
        classified=report.classified,
        failed=[ClassificationFailureItem(transaction_id=f.transaction_id, reason=f.reason) for f in report.failed],
        skipped=report.skipped,
    )


@router.post("/transactions/{transaction_id}/classify", response_model=ClassificationResponse)
async def classify_transaction(
    transaction_id: int,
    request: Request,
    classifier: Classifier = Depends(get_classifier),
):
    """Run automated classification for a single transaction"""
    request_id = get_request_id(request)
    try:
        result = await classifier.classify_transaction(transaction_id)

    except TransactionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    except ConfirmedTransactionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    except ClassificationUnavailable as e:
        logging.warning(f"Classification failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail="Classification service unavailable")

    except (StoreConflict, ConfigMissing) as e:
        logging.error(f"Classification error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ClassificationResponse(transaction_id=transaction_id, **asdict(result))


@router.put("/transactions/{transaction_id}/category", response_model=ClassificationResponse)
def set_category(
    transaction_id: int,
    request_body: ManualCategoryRequest,
    request: Request,
    classifier: Classifier = Depends(get_classifier),
):
    """Manually override a transaction's category"""
    try:
        result = classifier.manual_classify(transaction_id, request_body.category)

    except TransactionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    except UnknownCategoryError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except (StoreConflict, ConfigMissing) as e:
        logging.error(f"Manual classification error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ClassificationResponse(transaction_id=transaction_id, **asdict(result))
