"""Dependency injection for FastAPI endpoints"""

from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from budget_gateway.config import settings
from budget_gateway.domain.ports import MovementSource, ReasoningService, TransactionStore
from budget_gateway.infrastructure.clients.fintoc import FintocClient
from budget_gateway.infrastructure.clients.gemini import GeminiClient
from budget_gateway.infrastructure.database.repositories import SqlTransactionStore
from budget_gateway.infrastructure.database.session import get_db
from budget_gateway.services.classifier import Classifier
from budget_gateway.services.sync import SyncEngine


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_movement_source() -> FintocClient:
    """Provide Fintoc API client instance"""
    return FintocClient()


def get_reasoning_service() -> Optional[ReasoningService]:
    """Provide the Gemini client, or None when no key is configured (rules only)"""
    if not settings.gemini_api_key:
        return None
    return GeminiClient()


def get_store(db: Session = Depends(get_db)) -> TransactionStore:
    return SqlTransactionStore(db)


def get_sync_engine(
    source: MovementSource = Depends(get_movement_source),
    store: TransactionStore = Depends(get_store),
) -> SyncEngine:
    return SyncEngine(source, store)


def get_classifier(
    store: TransactionStore = Depends(get_store),
    reasoning: Optional[ReasoningService] = Depends(get_reasoning_service),
) -> Classifier:
    return Classifier(store, reasoning)
