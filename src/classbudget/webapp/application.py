"""FastAPI frontend for the class budget.

Every route reads the class state from SQLite, applies one domain operation
through :class:`classbudget.service.ClassBudget` and writes back the records
it changed. Domain errors are translated into JSON error bodies by a single
exception handler.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from fastapi import FastAPI, Form, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from sqlmodel import Session, select

from ..api import ApiExporter
from ..exceptions import (
    ClassBudgetError,
    DuplicateEventError,
    NoEventsSelectedError,
    NotFoundError,
    OverAllocatedError,
)
from ..models import OverBudgetWarning, ValidationMode
from ..notifications import NotificationType
from ..onboarding import SetupState, SetupTask
from ..ops import StructuredLogger
from ..roster import RosterChild
from ..service import ClassBudget
from .config import DEFAULT_ACTOR, DEFAULT_AMOUNT_PER_CHILD, DEFAULT_LOCALE, LOG_FILE
from .persistence import (
    SchoolClass,
    delete_child_row,
    delete_event_row,
    delete_expense_row,
    delete_payment_row,
    engine,
    list_class_ids,
    load_class_budget,
    load_roster,
    load_setup_state,
    save_child,
    save_class,
    save_event,
    save_expense,
    save_payment,
    save_setup_state,
)

# ---------------------------------------------------------------------------
# FastAPI application setup
# ---------------------------------------------------------------------------
app = FastAPI(title="Class Budget")
logger = StructuredLogger(path=LOG_FILE)
exporter = ApiExporter()


@app.exception_handler(ClassBudgetError)
async def class_budget_error_handler(request: Request, exc: ClassBudgetError) -> JSONResponse:
    status_code = 400
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, (OverAllocatedError, NoEventsSelectedError, DuplicateEventError)):
        status_code = 409
    payload: Dict[str, object] = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, OverAllocatedError):
        payload["allocation_remaining"] = str(exc.allocation_remaining)
    logger.log("request_rejected", path=request.url.path, error=type(exc).__name__, detail=str(exc))
    return JSONResponse(payload, status_code=status_code)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _load(session: Session, class_id: str) -> ClassBudget:
    return load_class_budget(session, class_id, logger=logger)


def _plan_response(budget: ClassBudget, warning: Optional[OverBudgetWarning]) -> Dict[str, object]:
    return {
        "metrics": exporter.metrics(budget.metrics()),
        "warning": exporter.warning(warning),
    }


def _setup_payload(state: SetupState) -> Dict[str, object]:
    return {
        "tasks": {task.value: status.value for task, status in state.statuses()},
        "progress_percentage": state.progress_percentage(),
        "is_complete": state.is_complete,
        "payment_link": state.payment_link,
    }


def _current_setup(session: Session, budget: ClassBudget) -> SetupState:
    state = load_setup_state(session, budget.class_id)
    return state.with_roster(
        children_added=budget.collection.registered_children(),
        staff_added=budget.config.staff_count,
    )


# ---------------------------------------------------------------------------
# Classes
# ---------------------------------------------------------------------------
@app.post("/classes", status_code=201)
def create_class(
    class_id: str = Form(...),
    name: str = Form(""),
    amount_per_child: str = Form(DEFAULT_AMOUNT_PER_CHILD),
    children_count: int = Form(0),
    staff_count: int = Form(0),
    include_builtin_events: bool = Form(True),
):
    class_id = class_id.strip()
    if not class_id:
        return JSONResponse({"error": "EmptyNameError", "detail": "Class id cannot be empty."}, status_code=400)
    with Session(engine) as session:
        existing = session.exec(select(SchoolClass).where(SchoolClass.class_id == class_id)).first()
        if existing is not None:
            return JSONResponse(
                {"error": "DuplicateClassError", "detail": f"Class '{class_id}' already exists."},
                status_code=409,
            )
        budget = ClassBudget.create(
            class_id,
            amount_per_child=amount_per_child,
            children_count=children_count,
            staff_count=staff_count,
            include_builtin_events=include_builtin_events,
            logger=logger,
        )
        save_class(session, budget, name=name.strip())
        for event in budget.plan.events:
            save_event(session, class_id, event)
        save_setup_state(session, class_id, SetupState(estimated_children=children_count))
        session.commit()
        return exporter.class_snapshot(budget)


@app.get("/classes")
def list_classes():
    with Session(engine) as session:
        return {"classes": list_class_ids(session)}


@app.get("/classes/{class_id}")
def class_snapshot(class_id: str):
    with Session(engine) as session:
        return exporter.class_snapshot(_load(session, class_id))


@app.get("/classes/{class_id}/metrics")
def class_metrics(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        return exporter.metrics(budget.metrics())


@app.get("/classes/{class_id}/breakdown")
def class_breakdown(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        return {"events": [exporter.event_line(line) for line in budget.event_breakdown()]}


@app.get("/classes/{class_id}/summary")
def class_summary(class_id: str, locale: str = Query(DEFAULT_LOCALE)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        return {"summary": budget.summary(locale=locale)}


# ---------------------------------------------------------------------------
# Budget configuration
# ---------------------------------------------------------------------------
@app.post("/classes/{class_id}/budget")
def edit_budget(class_id: str, amount_per_child: str = Form(...), children_count: int = Form(...)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        warning = budget.edit_budget(amount_per_child, children_count, actor=DEFAULT_ACTOR)
        save_class(session, budget)
        session.commit()
        return _plan_response(budget, warning)


@app.post("/classes/{class_id}/budget/fixed")
def set_fixed_total(class_id: str, total: str = Form(...)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        warning = budget.set_fixed_total(total, actor=DEFAULT_ACTOR)
        save_class(session, budget)
        session.commit()
        return _plan_response(budget, warning)


@app.post("/classes/{class_id}/staff-count")
def set_staff_count(class_id: str, staff_count: int = Form(...)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        warning = budget.set_staff_count(staff_count)
        save_class(session, budget)
        session.commit()
        return _plan_response(budget, warning)


@app.get("/classes/{class_id}/check")
def check_allocation(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        return {"mode": budget.mode.value, "warning": exporter.warning(budget.check_allocation())}


@app.post("/classes/{class_id}/finish")
def finish_setup(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        state = budget.finish_budget_setup(_current_setup(session, budget))
        save_class(session, budget)
        save_setup_state(session, class_id, state)
        session.commit()
        warning = budget.check_allocation()
        return {
            "mode": budget.mode.value,
            "warning": exporter.warning(warning),
            "metrics": exporter.metrics(budget.metrics()),
            "setup": _setup_payload(state),
        }


@app.post("/classes/{class_id}/mode")
def set_mode(class_id: str, mode: ValidationMode = Form(...)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        budget.set_mode(mode)
        save_class(session, budget)
        session.commit()
        return {"mode": budget.mode.value}


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@app.get("/classes/{class_id}/events")
def list_events(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        return {"events": [exporter.event(budget.plan, event) for event in budget.plan.events]}


@app.post("/classes/{class_id}/events", status_code=201)
def add_custom_event(class_id: str, name: str = Form(...), event_date: Optional[date] = Form(None)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        event = budget.add_custom_event(name, event_date=event_date)
        save_event(session, class_id, event)
        session.commit()
        return exporter.event(budget.plan, event)


@app.post("/classes/{class_id}/events/{event_id}/toggle")
def toggle_event(class_id: str, event_id: str, enabled: bool = Form(...)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        warning = budget.toggle_event(event_id, enabled)
        save_event(session, class_id, budget.plan.get_event(event_id))
        session.commit()
        return _plan_response(budget, warning)


@app.post("/classes/{class_id}/events/{event_id}/amounts")
def set_event_amounts(
    class_id: str,
    event_id: str,
    amount_per_kid: str = Form(...),
    amount_per_staff: str = Form("0"),
):
    with Session(engine) as session:
        budget = _load(session, class_id)
        warning = budget.set_event_amounts(event_id, amount_per_kid, amount_per_staff)
        save_event(session, class_id, budget.plan.get_event(event_id))
        session.commit()
        return _plan_response(budget, warning)


@app.post("/classes/{class_id}/events/{event_id}/headcount")
def set_event_headcount(
    class_id: str,
    event_id: str,
    kids_count: Optional[int] = Form(None),
    staff_count: Optional[int] = Form(None),
):
    with Session(engine) as session:
        budget = _load(session, class_id)
        warning = budget.set_event_headcount(event_id, kids_count, staff_count)
        save_event(session, class_id, budget.plan.get_event(event_id))
        session.commit()
        return _plan_response(budget, warning)


@app.post("/classes/{class_id}/events/{event_id}/headcount/reset")
def reset_event_headcount(class_id: str, event_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        warning = budget.reset_event_headcount(event_id)
        save_event(session, class_id, budget.plan.get_event(event_id))
        session.commit()
        return _plan_response(budget, warning)


@app.post("/classes/{class_id}/events/{event_id}/paid")
def set_event_paid(class_id: str, event_id: str, is_paid: bool = Form(True)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        event = budget.set_event_paid(event_id, is_paid)
        save_event(session, class_id, event)
        session.commit()
        return exporter.event(budget.plan, event)


@app.post("/classes/{class_id}/events/{event_id}/date")
def set_event_date(class_id: str, event_id: str, event_date: Optional[date] = Form(None)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        event = budget.set_event_date(event_id, event_date)
        save_event(session, class_id, event)
        session.commit()
        return exporter.event(budget.plan, event)


@app.delete("/classes/{class_id}/events/{event_id}")
def remove_custom_event(class_id: str, event_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        budget.remove_custom_event(event_id)
        delete_event_row(session, class_id, event_id)
        session.commit()
        return _plan_response(budget, budget.check_allocation())


# ---------------------------------------------------------------------------
# Setup checklist
# ---------------------------------------------------------------------------
@app.get("/classes/{class_id}/setup")
def setup_progress(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        return _setup_payload(_current_setup(session, budget))


@app.post("/classes/{class_id}/setup/{task}/complete")
def complete_setup_task(class_id: str, task: SetupTask):
    with Session(engine) as session:
        budget = _load(session, class_id)
        state = _current_setup(session, budget).complete(task)
        save_setup_state(session, class_id, state)
        session.commit()
        return _setup_payload(state)


@app.post("/classes/{class_id}/setup/{task}/skip")
def skip_setup_task(class_id: str, task: SetupTask):
    with Session(engine) as session:
        budget = _load(session, class_id)
        state = _current_setup(session, budget).skip(task)
        save_setup_state(session, class_id, state)
        session.commit()
        return _setup_payload(state)


@app.post("/classes/{class_id}/setup/payment-link")
def set_payment_link(class_id: str, link: str = Form(...)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        state = _current_setup(session, budget).with_payment_link(link)
        save_setup_state(session, class_id, state)
        session.commit()
        return _setup_payload(state)


# ---------------------------------------------------------------------------
# Roster and payments
# ---------------------------------------------------------------------------
@app.post("/classes/{class_id}/children", status_code=201)
def add_child(
    class_id: str,
    child_id: str = Form(...),
    name: str = Form(...),
    parent_names: str = Form(""),
):
    child = RosterChild(
        child_id=child_id.strip(),
        name=" ".join(name.split()),
        parent_names=tuple(part.strip() for part in parent_names.split(",") if part.strip()),
    )
    if not child.child_id or not child.name:
        return JSONResponse({"error": "EmptyNameError", "detail": "Child id and name are required."}, status_code=400)
    with Session(engine) as session:
        budget = _load(session, class_id)
        record = budget.register_child(child.child_id)
        save_child(session, class_id, child)
        save_payment(session, class_id, record)
        session.commit()
        return exporter.payment(record)


@app.delete("/classes/{class_id}/children/{child_id}")
def remove_child(class_id: str, child_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        budget.remove_child(child_id)
        delete_payment_row(session, class_id, child_id)
        delete_child_row(session, class_id, child_id)
        session.commit()
        return {"removed": child_id, "payments": exporter.collection(budget.collection_summary())}


@app.post("/classes/{class_id}/roster/sync")
def sync_roster(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        added, removed = budget.sync_roster(load_roster(session, class_id))
        for child_id in added:
            save_payment(session, class_id, budget.collection.get_record(child_id))
        for child_id in removed:
            delete_payment_row(session, class_id, child_id)
        session.commit()
        return {"added": list(added), "removed": list(removed)}


@app.get("/classes/{class_id}/payments")
def list_payments(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        return {
            "records": [exporter.payment(record) for record in budget.collection.records],
            "summary": exporter.collection(budget.collection_summary()),
        }


@app.post("/classes/{class_id}/payments/bulk-paid")
def mark_many_paid(class_id: str, child_ids: List[str] = Form(...)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        records = budget.mark_many_paid(child_ids, actor=DEFAULT_ACTOR)
        for record in records:
            save_payment(session, class_id, record)
        session.commit()
        return {
            "records": [exporter.payment(record) for record in records],
            "summary": exporter.collection(budget.collection_summary()),
        }


@app.post("/classes/{class_id}/payments/bulk-unpaid")
def mark_many_unpaid(class_id: str, child_ids: List[str] = Form(...)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        records = budget.mark_many_unpaid(child_ids, actor=DEFAULT_ACTOR)
        for record in records:
            save_payment(session, class_id, record)
        session.commit()
        return {
            "records": [exporter.payment(record) for record in records],
            "summary": exporter.collection(budget.collection_summary()),
        }


@app.post("/classes/{class_id}/payments/{child_id}/paid")
def mark_paid(class_id: str, child_id: str, amount: Optional[str] = Form(None)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        record = budget.mark_paid(child_id, amount or None, actor=DEFAULT_ACTOR)
        save_payment(session, class_id, record)
        session.commit()
        return exporter.payment(record)


@app.post("/classes/{class_id}/payments/{child_id}/unpaid")
def mark_unpaid(class_id: str, child_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        record = budget.mark_unpaid(child_id, actor=DEFAULT_ACTOR)
        save_payment(session, class_id, record)
        session.commit()
        return exporter.payment(record)


@app.get("/classes/{class_id}/payments/reminder")
def payment_reminder(class_id: str, title: Optional[str] = Query(None), locale: str = Query(DEFAULT_LOCALE)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        message = budget.payment_reminder(load_roster(session, class_id), title=title, locale=locale)
        return {"message": message, "unpaid": list(budget.collection.unpaid_child_ids())}


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------
@app.post("/classes/{class_id}/expenses", status_code=201)
def log_expense(
    class_id: str,
    description: str = Form(...),
    amount: str = Form(...),
    expense_date: Optional[date] = Form(None),
    event_id: Optional[str] = Form(None),
    receipt_url: Optional[str] = Form(None),
):
    with Session(engine) as session:
        budget = _load(session, class_id)
        expense = budget.log_expense(
            description,
            amount,
            expense_date,
            event_id or None,
            receipt_url=receipt_url or None,
            actor=DEFAULT_ACTOR,
        )
        save_expense(session, class_id, expense)
        session.commit()
        overspent = bool(budget.notifications.pending(notification_type=NotificationType.EVENT_OVERSPENT))
        return {
            "expense": exporter.expense(expense),
            "metrics": exporter.metrics(budget.metrics()),
            "event_overspent": overspent,
        }


@app.get("/classes/{class_id}/expenses")
def list_expenses(class_id: str, event_id: Optional[str] = Query(None), general: bool = Query(False)):
    with Session(engine) as session:
        budget = _load(session, class_id)
        expenses = budget.expenses.list_expenses(event_id, general=general)
        return {
            "expenses": [exporter.expense(expense) for expense in expenses],
            "spent": str(budget.expenses.spent(event_id, general=general)),
        }


@app.delete("/classes/{class_id}/expenses/{expense_id}")
def delete_expense(class_id: str, expense_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        expense = budget.delete_expense(expense_id, actor=DEFAULT_ACTOR)
        delete_expense_row(session, class_id, expense_id)
        session.commit()
        return {"deleted": exporter.expense(expense), "metrics": exporter.metrics(budget.metrics())}


@app.get("/classes/{class_id}/expenses.csv")
def export_expenses(class_id: str):
    with Session(engine) as session:
        budget = _load(session, class_id)
        output = budget.export_expenses_csv()
    filename = f"{class_id}-expenses.csv"
    return StreamingResponse(
        iter([output]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


__all__ = ["app", "logger", "exporter"]
