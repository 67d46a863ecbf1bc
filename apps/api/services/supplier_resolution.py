"""
Supplier identity resolution.

`resolve_supplier` maps a free-text supplier name (as extracted from an
uploaded document) onto a supplier record of the calling account, creating
one when nothing matches. `update_supplier` later merges derived document
metadata (totals, contact details) back onto that record.

Matching is a case-insensitive containment test: an existing supplier
matches when its name contains the requested name. When several match, the
oldest (created_at, then id) wins.

Both operations run their store work in a single transaction. Resolution
holds an advisory lock keyed by (account, normalized name) across the
search-then-create sequence, and the insert itself is
`ON CONFLICT DO NOTHING` on the same key, so concurrent or retried
resolutions of one name converge on one row.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

import psycopg
from psycopg import errors as pg_errors
from psycopg import Connection
from pydantic import ValidationError

from ..errors import CreateFailed, InvalidInput, NotFound, SearchFailed, UpdateFailed
from ..models.supplier import MAX_NAME_LENGTH, SupplierType, SupplierUpdate
from ..repos import suppliers as supplier_repo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveResult:
    supplier_id: Any
    is_new: bool
    record: Dict[str, Any]


def _require(value: Optional[str], field: str) -> str:
    """Return an identifier exactly as given; it is never trimmed."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"Missing {field}")
    if "\x00" in value:
        raise InvalidInput(f"{field} must not contain NUL characters")
    return value


def _require_name(value: Optional[str]) -> str:
    name = _require(value, "supplierName").strip()
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInput(f"supplierName must be at most {MAX_NAME_LENGTH} characters")
    return name


def resolve_supplier(conn: Connection, user_id: Optional[str], raw_name: Optional[str]) -> ResolveResult:
    """Find the account's supplier matching `raw_name`, or create it."""
    user_id = _require(user_id, "userId")
    name = _require_name(raw_name)
    normalized = supplier_repo.normalize_name(name)
    ctx = {"user_id": user_id, "supplier_name": name}

    with conn.transaction():
        try:
            supplier_repo.lock_supplier_name(conn, user_id, normalized)
        except psycopg.Error as exc:
            logger.exception("Could not acquire supplier resolution lock", extra=ctx)
            raise CreateFailed(**ctx) from exc

        try:
            matches = supplier_repo.find_matching_suppliers(conn, user_id, name)
        except psycopg.Error as exc:
            logger.exception("Supplier search failed", extra=ctx)
            raise SearchFailed(**ctx) from exc

        if matches:
            found = matches[0]
            if len(matches) > 1:
                logger.info(
                    "Supplier name %r matched %d suppliers; using oldest %s",
                    name, len(matches), found["id"], extra=ctx,
                )
            else:
                logger.info("Found existing supplier %r (%s)", found["name"], found["id"], extra=ctx)
            return ResolveResult(supplier_id=found["id"], is_new=False, record=found)

        try:
            record, created = supplier_repo.insert_supplier(conn, user_id, name)
        except (psycopg.Error, LookupError) as exc:
            logger.exception("Supplier creation failed", extra=ctx)
            raise CreateFailed(**ctx) from exc

    if created:
        logger.info("Created supplier %r (%s)", record["name"], record["id"], extra=ctx)
    else:
        logger.info("Supplier %r already existed (%s)", record["name"], record["id"], extra=ctx)
    return ResolveResult(supplier_id=record["id"], is_new=created, record=record)


def _validation_error(exc: ValidationError) -> InvalidInput:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return InvalidInput(f"Invalid updateData ({'; '.join(problems)})")


def update_supplier(
    conn: Connection,
    user_id: Optional[str],
    supplier_id: Optional[str],
    update_data: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """Merge `update_data` into one of the account's suppliers.

    Raises NotFound when no supplier with that id belongs to `user_id`;
    nothing is written in that case.
    """
    user_id = _require(user_id, "userId")
    supplier_id = _require(supplier_id, "supplierId")
    if not isinstance(update_data, Mapping) or not update_data:
        raise InvalidInput("Missing updateData")
    try:
        UUID(supplier_id)
    except ValueError:
        raise InvalidInput("supplierId is not a valid UUID") from None

    try:
        fields = SupplierUpdate.model_validate(dict(update_data)).to_fields()
    except ValidationError as exc:
        raise _validation_error(exc) from None

    ctx = {"user_id": user_id, "supplier_id": supplier_id}
    try:
        with conn.transaction():
            updated = supplier_repo.update_supplier_fields(conn, user_id, supplier_id, fields)
    except pg_errors.UniqueViolation as exc:
        raise InvalidInput("Another supplier of this account already has that name") from exc
    except pg_errors.CheckViolation as exc:
        raise InvalidInput("updateData violates a supplier constraint") from exc
    except psycopg.Error as exc:
        logger.exception("Supplier update failed", extra=ctx)
        raise UpdateFailed(**ctx) from exc

    if updated is None:
        logger.warning("No supplier %s for account; nothing updated", supplier_id, extra=ctx)
        raise NotFound(**ctx)

    logger.info("Updated supplier %s fields=%s", supplier_id, sorted(fields), extra=ctx)
    return updated


def get_supplier(conn: Connection, user_id: Optional[str], supplier_id: Optional[str]) -> Dict[str, Any]:
    user_id = _require(user_id, "userId")
    supplier_id = _require(supplier_id, "supplierId")
    try:
        UUID(supplier_id)
    except ValueError:
        raise InvalidInput("supplierId is not a valid UUID") from None
    try:
        record = supplier_repo.get_supplier(conn, user_id, supplier_id)
    except psycopg.Error as exc:
        logger.exception("Supplier lookup failed", extra={"user_id": user_id, "supplier_id": supplier_id})
        raise SearchFailed() from exc
    if record is None:
        raise NotFound()
    return record


def list_or_search_suppliers(
    conn: Connection,
    user_id: Optional[str],
    term: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
):
    user_id = _require(user_id, "userId")
    if term and "\x00" in term:
        raise InvalidInput("q must not contain NUL characters")
    try:
        if term and term.strip():
            return supplier_repo.search_suppliers(conn, user_id, term.strip(), limit=limit, offset=offset)
        return supplier_repo.list_suppliers(conn, user_id, limit=limit, offset=offset)
    except psycopg.Error as exc:
        logger.exception("Supplier listing failed", extra={"user_id": user_id})
        raise SearchFailed() from exc


def _first(extracted: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = extracted.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def supplier_update_from_extraction(extracted: Mapping[str, Any]) -> Dict[str, Any]:
    """Build an `updateData` payload from a document extraction result.

    Only fields the extraction actually produced are included. `amount` is
    reported as `total_spend` for this one document; adding it to the running
    total is up to the caller.
    """
    data: Dict[str, Any] = {}

    amount = extracted.get("amount")
    if amount is not None and not isinstance(amount, bool):
        try:
            spend = Decimal(str(amount).replace(",", "").strip())
        except InvalidOperation:
            spend = None
        if spend is not None and spend.is_finite() and spend > 0:
            data["total_spend"] = spend.quantize(Decimal("0.01"))

    terms = _first(extracted, "payment_terms")
    if terms:
        data["payment_terms"] = terms
    email = _first(extracted, "supplier_email", "contact_email")
    if email:
        data["contact_email"] = email
    phone = _first(extracted, "supplier_phone", "contact_phone")
    if phone:
        data["contact_phone"] = phone
    address = _first(extracted, "supplier_address", "contact_address")
    if address:
        data["contact_address"] = address

    supplier_type = extracted.get("supplier_type")
    if supplier_type in {t.value for t in SupplierType}:
        data["supplier_type"] = supplier_type

    return data
