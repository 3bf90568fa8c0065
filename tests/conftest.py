"""Pytest fixtures for testing"""

import pytest
from typing import Any, Callable, Dict, Generator, Iterable, List, Mapping, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from budget_gateway.api.main import create_app
from budget_gateway.api.dependencies import get_movement_source, get_reasoning_service
from budget_gateway.infrastructure.database.models import Base
from budget_gateway.infrastructure.database.repositories import SqlTransactionStore
from budget_gateway.infrastructure.database.session import get_db, init_db
from budget_gateway.domain.exceptions import ClassificationUnavailable, SourceUnavailable
from budget_gateway.domain.models import Account, RawMovement


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeMovementSource:
    """In-memory movement source; accounts listed in ``failing`` raise on fetch"""

    def __init__(
        self,
        movements: Optional[Dict[str, List[RawMovement]]] = None,
        failing: Iterable[str] = (),
        accounts_error: bool = False,
    ):
        self.movements = movements or {}
        self.failing = set(failing)
        self.accounts_error = accounts_error
        self.calls: List[str] = []

    async def list_accounts(self, link_token: str) -> List[Account]:
        self.calls.append(f"accounts:{link_token}")
        if self.accounts_error:
            raise SourceUnavailable("Fintoc API error: 503")
        return [Account(account_id=a) for a in self.movements]

    async def list_movements(self, link_token: str, account_id: str) -> List[RawMovement]:
        self.calls.append(f"movements:{account_id}")
        if account_id in self.failing:
            raise SourceUnavailable("Fintoc API error: 500")
        return list(self.movements[account_id])

    async def create_link_intent(self, webhook_url: str) -> str:
        self.calls.append(f"intent:{webhook_url}")
        return "widget_token_test"


class FakeReasoningService:
    """
    Deterministic reasoning service.

    ``answer`` is either a fixed decoded-JSON value or a callable receiving
    the prompt. Set ``fail`` to simulate an unreachable service.
    """

    def __init__(self, answer: Any = None, fail: bool = False):
        self.answer = answer
        self.fail = fail
        self.prompts: List[str] = []
        self.schemas: List[Mapping[str, Any]] = []

    async def generate_structured(self, prompt: str, schema: Mapping[str, Any]) -> Any:
        self.prompts.append(prompt)
        self.schemas.append(schema)
        if self.fail:
            raise ClassificationUnavailable("Reasoning service unreachable")
        if callable(self.answer):
            return self.answer(prompt)
        return self.answer


def movement(external_id: str, amount: int, description: Optional[str] = "Compra", posted_at: Optional[str] = "2024-03-01T10:00:00Z") -> RawMovement:
    return RawMovement(external_id=external_id, description=description, amount=amount, posted_at=posted_at)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    init_db(engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db: Session) -> SqlTransactionStore:
    return SqlTransactionStore(db)


@pytest.fixture
def make_movement() -> Callable[..., RawMovement]:
    return movement


@pytest.fixture
def make_source() -> Callable[..., FakeMovementSource]:
    return FakeMovementSource


@pytest.fixture
def make_reasoning() -> Callable[..., FakeReasoningService]:
    return FakeReasoningService


@pytest.fixture
def sample_movements() -> Dict[str, List[RawMovement]]:
    """Two accounts of realistic movements"""
    return {
        "acc_checking": [
            movement("mov_1", 1_500_000, "Pago Sueldo ACME", "2024-03-01T09:00:00Z"),
            movement("mov_2", -45_990, "Compra LIDER Express", "2024-03-02T18:30:00Z"),
            movement("mov_3", -38_200, "Pago Servipag Enel", "2024-03-03T10:00:00Z"),
            movement("mov_4", -20_000, "Transferencia a Juan Perez", "2024-03-04T12:00:00Z"),
        ],
        "acc_savings": [
            movement("mov_5", 450_000, "Arriendo depto", "2024-03-05"),
            movement("mov_6", -12_000, "Cafeteria del centro", None),
        ],
    }


@pytest.fixture
def fake_source(sample_movements) -> FakeMovementSource:
    return FakeMovementSource(sample_movements)


@pytest.fixture
def fake_reasoning() -> FakeReasoningService:
    return FakeReasoningService(
        answer={"category": "Por Definir", "review_state": "pending", "rationale": "Sin regla aplicable"}
    )


@pytest.fixture
def client(db: Session, fake_source: FakeMovementSource) -> TestClient:
    """Create FastAPI test client with test database and fake collaborators"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_movement_source] = lambda: fake_source
    app.dependency_overrides[get_reasoning_service] = lambda: None
    return TestClient(app)
