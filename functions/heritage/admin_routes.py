"""
HTTP routes for the authenticated admin panel.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from heritage import admin
from heritage.dependencies import (
    drop_workflow,
    get_workflow,
    new_workflow,
    register_workflow,
)
from heritage.schemas import (
    CategoryPayload,
    DashboardResponse,
    EditorResponse,
    ItemPayload,
    LoginRequest,
    LoginResponse,
    OpenEditorRequest,
    SettingRequest,
    StatusResponse,
    UploadResponse,
)
from heritage.workflow import AdminWorkflow, Draft, DraftKind

router = APIRouter(prefix="/admin")


def _editor(draft: Draft) -> EditorResponse:
    return EditorResponse(kind=draft.kind.value, is_new=draft.is_new, fields=draft.fields)


def _dashboard(workflow: AdminWorkflow) -> DashboardResponse:
    return DashboardResponse(
        email=workflow.session.email,
        categories=workflow.categories,
        items=workflow.items,
        settings=workflow.settings,
    )


def _require_confirmation(confirm: bool) -> None:
    if not confirm:
        raise HTTPException(status_code=400, detail="Deletion must be confirmed")


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest):
    workflow = new_workflow()
    try:
        session = workflow.login(payload.email, payload.password)
    except Exception:
        workflow.close()
        raise
    register_workflow(workflow)
    return LoginResponse(access_token=session.access_token, email=session.email)


@router.post("/logout", response_model=StatusResponse)
def logout(workflow: AdminWorkflow = Depends(get_workflow)):
    access_token = workflow.session.access_token
    workflow.logout()
    drop_workflow(access_token)
    return StatusResponse(status="ok")


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(workflow: AdminWorkflow = Depends(get_workflow)):
    workflow.refresh()
    return _dashboard(workflow)


@router.put("/categories")
def save_category(
    payload: CategoryPayload, workflow: AdminWorkflow = Depends(get_workflow)
):
    saved = admin.save_category(workflow.db, payload.model_dump())
    workflow.refresh()
    return saved


@router.delete("/categories/{category_id}", response_model=DashboardResponse)
def delete_category(
    category_id: str,
    confirm: bool = Query(False),
    workflow: AdminWorkflow = Depends(get_workflow),
):
    _require_confirmation(confirm)
    workflow.delete_category(category_id, confirmed=True)
    return _dashboard(workflow)


@router.put("/items")
def save_item(payload: ItemPayload, workflow: AdminWorkflow = Depends(get_workflow)):
    saved = admin.save_item(workflow.db, payload.model_dump())
    workflow.refresh()
    return saved


@router.delete("/items/{item_id}", response_model=DashboardResponse)
def delete_item(
    item_id: str,
    confirm: bool = Query(False),
    workflow: AdminWorkflow = Depends(get_workflow),
):
    _require_confirmation(confirm)
    workflow.delete_item(item_id, confirmed=True)
    return _dashboard(workflow)


@router.put("/settings/{key}", response_model=DashboardResponse)
def save_setting(
    key: str,
    payload: SettingRequest,
    workflow: AdminWorkflow = Depends(get_workflow),
):
    workflow.save_setting(key, payload.value)
    return _dashboard(workflow)


@router.post("/settings/{key}/upload", response_model=UploadResponse)
async def upload_setting(
    key: str,
    file: UploadFile = File(...),
    workflow: AdminWorkflow = Depends(get_workflow),
):
    data = await file.read()
    url = await asyncio.to_thread(
        workflow.upload_setting, key, file.filename or "", data, file.content_type
    )
    return UploadResponse(url=url)


@router.post("/upload", response_model=UploadResponse)
async def upload(
    file: UploadFile = File(...),
    workflow: AdminWorkflow = Depends(get_workflow),
):
    data = await file.read()
    url = await asyncio.to_thread(
        workflow.upload, file.filename or "", data, file.content_type
    )
    return UploadResponse(url=url)


@router.post("/editor", response_model=EditorResponse)
def open_editor(
    payload: OpenEditorRequest, workflow: AdminWorkflow = Depends(get_workflow)
):
    if payload.kind == DraftKind.CATEGORY:
        draft = workflow.open_category_editor(payload.id)
    else:
        draft = workflow.open_item_editor(payload.id)
    return _editor(draft)


@router.patch("/editor", response_model=EditorResponse)
def edit_draft(changes: dict, workflow: AdminWorkflow = Depends(get_workflow)):
    return _editor(workflow.edit_many(changes))


@router.post("/editor/upload", response_model=EditorResponse)
async def upload_to_draft(
    field: str = Query(...),
    file: UploadFile = File(...),
    workflow: AdminWorkflow = Depends(get_workflow),
):
    data = await file.read()
    draft = await asyncio.to_thread(
        workflow.upload_to_field, field, file.filename or "", data, file.content_type
    )
    return _editor(draft)


@router.post("/editor/save")
def save_draft(workflow: AdminWorkflow = Depends(get_workflow)):
    return workflow.save()


@router.delete("/editor", response_model=StatusResponse)
def cancel_editor(workflow: AdminWorkflow = Depends(get_workflow)):
    workflow.cancel_editor()
    return StatusResponse(status="ok")
