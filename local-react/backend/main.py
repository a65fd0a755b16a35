# Serve with the project installed: uvicorn main:app --app-dir local-react/backend
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from core import combine_balance, format_amount, keep_first, parse_entry, summarize, validate
from editor import EditorSession

logger = logging.getLogger(__name__)

app = FastAPI(title="Disperse Ledger Local API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class LedgerIn(BaseModel):
    lines: list[str] = Field(default_factory=lambda: [""], description="Raw entry lines, one per recipient")


class LedgerOut(BaseModel):
    lines: list[str]


class PasteIn(LedgerIn):
    index: int = Field(..., description="0-based line the cursor is on")
    text: str


class PasteOut(LedgerOut):
    focused_index: int
    inserted: int


class ParsedEntryOut(BaseModel):
    line: int
    recipient: str
    amount_raw: Optional[str]
    amount_value: Optional[str] = Field(None, description="Null when the amount is not a number")


class ValidationOut(BaseModel):
    errors: list[str]
    has_duplicates: bool
    is_clean: bool
    recipients: int
    total: str
    skipped: int = Field(0, description="Clean lines whose amount could not be added to the total")


def amount_text(value: Decimal) -> Optional[str]:
    return None if value.is_nan() else format_amount(value)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/parse", response_model=list[ParsedEntryOut])
def parse_lines(payload: LedgerIn) -> list[dict]:
    out = []
    for line, text in enumerate(payload.lines, start=1):
        p = parse_entry(text)
        out.append(
            {
                "line": line,
                "recipient": p.recipient,
                "amount_raw": p.amount_raw,
                "amount_value": amount_text(p.amount_value),
            }
        )
    return out


@app.post("/validate", response_model=ValidationOut)
def validate_lines(payload: LedgerIn) -> dict:
    result = validate(payload.lines)
    summary = summarize(payload.lines)
    return {
        "errors": result.messages,
        "has_duplicates": result.has_duplicates,
        "is_clean": result.is_clean,
        "recipients": summary.recipients,
        "total": format_amount(summary.total),
        "skipped": summary.skipped,
    }


@app.post("/dedupe/keep-first", response_model=LedgerOut)
def dedupe_keep_first(payload: LedgerIn) -> dict:
    lines = keep_first(payload.lines) or [""]
    logger.info("keep-first: %d -> %d line(s)", len(payload.lines), len(lines))
    return {"lines": lines}


@app.post("/dedupe/combine", response_model=LedgerOut)
def dedupe_combine(payload: LedgerIn) -> dict:
    lines = combine_balance(payload.lines) or [""]
    logger.info("combine: %d -> %d line(s)", len(payload.lines), len(lines))
    return {"lines": lines}


@app.post("/paste", response_model=PasteOut)
def paste_lines(payload: PasteIn) -> dict:
    session = EditorSession(payload.lines)
    if not 0 <= payload.index < len(session.lines):
        raise HTTPException(status_code=400, detail="Line index out of range")
    inserted = session.paste(payload.index, payload.text)
    return {"lines": list(session.lines), "focused_index": session.focused_index, "inserted": inserted}
