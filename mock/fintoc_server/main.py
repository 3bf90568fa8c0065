from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pathlib import Path
import json
import os

app = FastAPI(title="Mock Fintoc Server", version="1.0.0")
# Support both local development and Docker
DATA_FILE = Path(os.environ.get("FINTOC_STUB_FILE", Path(__file__).with_name("links.json")))
PAGE_SIZE = 2

# link_token -> {"accounts": [...], "movements": {account_id: [...]}, "broken_accounts": [...]}
DEFAULT_LINKS = {
    "link_demo_token": {
        "accounts": [
            {"id": "acc_checking", "name": "Cuenta Corriente"},
            {"id": "acc_broken", "name": "Cuenta Vista"},
            {"id": "acc_savings", "name": "Cuenta Ahorro"},
        ],
        "broken_accounts": ["acc_broken"],
        "movements": {
            "acc_checking": [
                {"id": "mov_1", "description": "Pago Sueldo ACME", "amount": 1500000, "post_date": "2024-03-01T09:00:00Z"},
                {"id": "mov_2", "description": "Compra LIDER Express", "amount": -45990, "post_date": "2024-03-02T18:30:00Z"},
                {"id": "mov_3", "description": "Pago Servipag Enel", "amount": -38200, "post_date": "2024-03-03T10:00:00Z"},
                {"id": "mov_4", "description": "Transferencia a Juan Perez", "amount": -20000, "post_date": "2024-03-04T12:00:00Z"},
                {"id": "mov_5", "description": None, "amount": -3500, "post_date": None},
            ],
            "acc_savings": [
                {"id": "mov_6", "description": "Arriendo depto", "amount": 450000, "post_date": "2024-03-05"},
            ],
        },
    }
}


def load_links() -> dict:
    if DATA_FILE.exists():
        return json.loads(DATA_FILE.read_text())
    return DEFAULT_LINKS


def _authorize(authorization: str | None) -> None:
    if not authorization:
        raise HTTPException(status_code=401, detail="missing api key")


def _paginated(items: list, page: int, request: Request) -> JSONResponse:
    start = (page - 1) * PAGE_SIZE
    chunk = items[start:start + PAGE_SIZE]
    headers = {}
    if start + PAGE_SIZE < len(items):
        next_url = request.url.include_query_params(page=page + 1)
        headers["Link"] = f'<{next_url}>; rel="next"'
    return JSONResponse(content=chunk, headers=headers)


@app.get("/health")
def health(): return {"status": "ok"}


@app.post("/v1/link_intents")
def create_link_intent(body: dict, authorization: str | None = Header(None)):
    _authorize(authorization)
    return {"id": "li_mock", "widget_token": "li_mock_sec_widget", "webhook_url": body.get("webhook_url")}


@app.get("/v1/links/{link_token}/accounts")
def list_accounts(link_token: str, authorization: str | None = Header(None)):
    _authorize(authorization)
    link = load_links().get(link_token)
    if link is None:
        raise HTTPException(status_code=404, detail="link not found")
    return link["accounts"]


@app.get("/v1/links/{link_token}/accounts/{account_id}/movements")
def list_movements(
    link_token: str,
    account_id: str,
    request: Request,
    page: int = 1,
    authorization: str | None = Header(None),
):
    _authorize(authorization)
    link = load_links().get(link_token)
    if link is None:
        raise HTTPException(status_code=404, detail="link not found")
    if account_id in link.get("broken_accounts", []):
        raise HTTPException(status_code=500, detail="upstream bank error")
    movements = link["movements"].get(account_id, [])
    return _paginated(movements, page, request)
