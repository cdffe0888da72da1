# gourmetclick/routers/expenses.py
"""
Expenses ("gastos") paid from the register. A receipt photo is optional.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from gourmetclick.config import get_bucket, get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.core.security import require_manager
from gourmetclick.schemas.expense import ExpenseCategory, ExpenseOut
from gourmetclick.schemas.principal import Principal
from gourmetclick.services import expenses
from gourmetclick.services.media import upload_image

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.get("", response_model=List[ExpenseOut], summary="List expenses")
def list_expenses(
    session_id: Optional[str] = Query(None, description="Only expenses of this cash session"),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return expenses.list_expenses(db, principal.tenant_id, session_id)


@router.post("", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED, summary="Record expense")
async def create_expense(
    amount: float = Form(..., gt=0),
    category: ExpenseCategory = Form("other"),
    description: str = Form(..., min_length=1),
    receipt: Optional[UploadFile] = File(None, description="Receipt photo (optional)"),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
    bucket=Depends(get_bucket),
):
    receipt_url = None
    if receipt is not None:
        uploaded = await upload_image(bucket, receipt, f"expense-receipts/{principal.tenant_id}")
        receipt_url = uploaded["url"]
    return expenses.create_expense(
        db, principal.tenant_id, amount, category, description,
        receipt_url=receipt_url, created_by=principal.uid,
    )


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete expense")
def delete_expense(expense_id: str, principal: Principal = Depends(require_manager), db=Depends(get_db)):
    expenses.delete_expense(db, principal.tenant_id, expense_id)
