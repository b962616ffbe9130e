from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse

from ..models.schemas import CleaningOptionsIn, DashboardRequest
from ..models.table import ErrorCode
from ..services.dataset_service import (
    DatasetNotFound,
    apply_cleaning,
    dashboard_for,
    delete_dataset,
    export_csv,
    get_dataset,
    list_datasets,
    preview_for,
    quality_for,
    register_upload,
)
from ..utils.logger import get_logger

router = APIRouter(prefix="/datasets", tags=["datasets"])
log = get_logger("router.datasets")


def _not_found(dataset_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Dataset {dataset_id} not found")


@router.get("")
async def list_all():
    return {"datasets": list_datasets()}


@router.post("/upload")
async def upload_data(file: UploadFile = File(...)):
    """Parse an uploaded CSV/TSV/Excel file and keep it for later dashboard and cleaning calls."""
    content = await file.read()
    log.info(f"File {file.filename} read into memory, size={len(content)} bytes")

    result, dataset = register_upload(content, file.filename or "")
    if not result.success:
        status_code = 413 if result.error_code is ErrorCode.FILE_TOO_LARGE else 400
        raise HTTPException(
            status_code=status_code,
            detail={"error": result.error, "error_code": result.error_code.value},
        )

    return {
        "status": "success",
        "message": "File parsed successfully.",
        **dataset.to_dict(include_rows=False),
    }


@router.get("/{dataset_id}")
async def dataset_detail(dataset_id: str, include_rows: bool = Query(False)):
    try:
        return get_dataset(dataset_id).to_dict(include_rows=include_rows)
    except DatasetNotFound:
        raise _not_found(dataset_id)


@router.delete("/{dataset_id}")
async def remove(dataset_id: str):
    try:
        delete_dataset(dataset_id)
    except DatasetNotFound:
        raise _not_found(dataset_id)
    return {"status": "deleted", "dataset_id": dataset_id}


@router.post("/{dataset_id}/dashboard")
async def dashboard(dataset_id: str, payload: Optional[DashboardRequest] = None):
    payload = payload or DashboardRequest()
    try:
        data = dashboard_for(
            dataset_id,
            filters=payload.to_filters(),
            config=payload.kpi_config.to_config() if payload.kpi_config else None,
            chart=payload.chart.to_config() if payload.chart else None,
        )
    except DatasetNotFound:
        raise _not_found(dataset_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not payload.include_rows:
        data.pop("rows", None)
    return data


@router.get("/{dataset_id}/quality")
async def quality(dataset_id: str):
    try:
        return quality_for(dataset_id).to_dict()
    except DatasetNotFound:
        raise _not_found(dataset_id)


@router.post("/{dataset_id}/clean/preview")
async def clean_preview(dataset_id: str, options: Optional[CleaningOptionsIn] = None):
    options = options or CleaningOptionsIn()
    try:
        return preview_for(dataset_id, options.to_options()).to_dict()
    except DatasetNotFound:
        raise _not_found(dataset_id)


@router.post("/{dataset_id}/clean")
async def clean(dataset_id: str, options: Optional[CleaningOptionsIn] = None):
    options = options or CleaningOptionsIn()
    try:
        result = apply_cleaning(dataset_id, options.to_options())
    except DatasetNotFound:
        raise _not_found(dataset_id)
    except Exception as e:
        log.exception(f"Cleaning failed for dataset {dataset_id}")
        raise HTTPException(status_code=500, detail=f"Could not clean data: {e}")
    return result.to_dict()


@router.get("/{dataset_id}/export/csv")
async def export(dataset_id: str):
    try:
        dataset = get_dataset(dataset_id)
        text = export_csv(dataset_id)
    except DatasetNotFound:
        raise _not_found(dataset_id)

    stem = (dataset.table.file_name or dataset_id).rsplit(".", 1)[0] or dataset_id
    headers = {"Content-Disposition": f"attachment; filename={stem}_cleaned.csv"}
    return StreamingResponse(iter([text]), media_type="text/csv", headers=headers)
