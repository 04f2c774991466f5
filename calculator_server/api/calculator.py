# calculator_server/api/calculator.py

from datetime import datetime
from typing import Any, Literal
from pydantic import BaseModel
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from calculator_server.api.deps import get_current_user, get_optional_user
from calculator_server.core import history
from calculator_server.core.auth import Identity
from calculator_server.core.calculator import calculate
from calculator_server.database import get_db


router = APIRouter(prefix="/api/calculator", tags=["calculator"])

OperationKind = Literal[
    "addition", "subtraction", "multiplication", "division", "exponentiation", "square_root"
]


# -------------------------------
# Request Schemas
# -------------------------------

class TwoOperandRequest(BaseModel):
    """
    Operands are parsed by the calculation engine, so numeric strings are allowed.
    """
    a: Any
    b: Any


class OneOperandRequest(BaseModel):
    a: Any


def _run(name: str, request: Request, db: Session, user: Identity | None, a: Any, b: Any = None) -> dict:
    """
    Computes the operation and, for an authenticated caller, appends it to their history.
    Failed operations raise before anything is written.
    """
    kind, operands, result = calculate(name, a, b)

    calculation = None
    if user is not None:
        calculation = history.record_calculation(
            db,
            user.user_id,
            kind,
            operands,
            result,
            user_agent=request.headers.get("user-agent"),
            ip_address=request.client.host if request.client else None,
        )

    return {
        "success": True,
        "data": {
            "operation": kind,
            "operands": operands,
            "result": result,
            "calculation_id": calculation.id if calculation else None,
            "saved_to_history": calculation is not None,
        },
    }


# -------------------------------
# Arithmetic Endpoints
# -------------------------------

@router.post("/add")
def add(req: TwoOperandRequest, request: Request, db: Session = Depends(get_db),
        user: Identity | None = Depends(get_optional_user)):
    return _run("add", request, db, user, req.a, req.b)


@router.post("/subtract")
def subtract(req: TwoOperandRequest, request: Request, db: Session = Depends(get_db),
             user: Identity | None = Depends(get_optional_user)):
    return _run("subtract", request, db, user, req.a, req.b)


@router.post("/multiply")
def multiply(req: TwoOperandRequest, request: Request, db: Session = Depends(get_db),
             user: Identity | None = Depends(get_optional_user)):
    return _run("multiply", request, db, user, req.a, req.b)


@router.post("/divide")
def divide(req: TwoOperandRequest, request: Request, db: Session = Depends(get_db),
           user: Identity | None = Depends(get_optional_user)):
    return _run("divide", request, db, user, req.a, req.b)


@router.post("/power")
def power(req: TwoOperandRequest, request: Request, db: Session = Depends(get_db),
          user: Identity | None = Depends(get_optional_user)):
    return _run("power", request, db, user, req.a, req.b)


@router.post("/sqrt")
def sqrt(req: OneOperandRequest, request: Request, db: Session = Depends(get_db),
         user: Identity | None = Depends(get_optional_user)):
    return _run("sqrt", request, db, user, req.a)


# -------------------------------
# History Endpoints
# -------------------------------

@router.get("/history")
def get_history(
    limit: int = Query(history.DEFAULT_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    operation: OperationKind | None = None,
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    current_user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    page = history.query_history(
        db,
        current_user.user_id,
        limit=limit,
        offset=offset,
        operation=operation,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "success": True,
        "data": [history.public_calculation(c) for c in page.items],
        "pagination": page.pagination(),
        "filters": {
            "operation": operation,
            "startDate": start_date.isoformat() if start_date else None,
            "endDate": end_date.isoformat() if end_date else None,
        },
    }


@router.delete("/history")
def clear_history(current_user: Identity = Depends(get_current_user), db: Session = Depends(get_db)):
    deleted = history.clear_history(db, current_user.user_id)
    return {
        "success": True,
        "message": "Calculation history cleared successfully",
        "data": {"deletedCount": deleted},
    }


@router.get("/stats")
def get_stats(current_user: Identity = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"success": True, "data": history.get_user_stats(db, current_user.user_id)}
