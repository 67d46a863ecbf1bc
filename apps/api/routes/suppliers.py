from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from psycopg import Connection

from ..db import get_conn
from ..models.supplier import (
    ResolveSupplierRequest,
    ResolveSupplierResponse,
    Supplier,
    SupplierPage,
    UpdateSupplierRequest,
    UpdateSupplierResponse,
)
from ..services.supplier_resolution import (
    get_supplier,
    list_or_search_suppliers,
    resolve_supplier,
    update_supplier,
)
from ..settings import settings

router = APIRouter(prefix="/api", tags=["suppliers"])


# Find-or-create the supplier named on an uploaded document
@router.post("/resolve-supplier", response_model=ResolveSupplierResponse)
def post_resolve_supplier(
    payload: ResolveSupplierRequest = Body(...),
    conn: Connection = Depends(get_conn),
):
    result = resolve_supplier(conn, payload.user_id, payload.supplier_name)
    return ResolveSupplierResponse(
        supplier_id=result.supplier_id,
        is_new=result.is_new,
        supplier=Supplier.model_validate(result.record),
    )


# Attach derived document fields to an existing supplier
@router.post("/update-supplier", response_model=UpdateSupplierResponse)
def post_update_supplier(
    payload: UpdateSupplierRequest = Body(...),
    conn: Connection = Depends(get_conn),
):
    record = update_supplier(conn, payload.user_id, payload.supplier_id, payload.update_data)
    return UpdateSupplierResponse(
        message="Supplier updated successfully",
        supplier=Supplier.model_validate(record),
    )


# List an account's suppliers, or search them by partial name with `q`
@router.get("/suppliers", response_model=SupplierPage)
def get_suppliers(
    user_id: Optional[str] = Query(None, alias="userId"),
    q: Optional[str] = Query(None, description="Case-insensitive partial name"),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    conn: Connection = Depends(get_conn),
):
    limit = min(limit, settings.SEARCH_LIMIT_MAX)
    items = list_or_search_suppliers(conn, user_id, q, limit=limit, offset=offset)
    return {"items": items, "limit": limit, "offset": offset}


# Get single supplier
@router.get("/suppliers/{supplier_id}", response_model=Supplier)
def get_supplier_by_id(
    supplier_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    conn: Connection = Depends(get_conn),
):
    return get_supplier(conn, user_id, supplier_id)
