from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models.cleaning import CleaningOptions, CleaningPreview, CleaningResult, CleaningSummary
from ..models.dashboard import ChartConfig, KpiConfig
from ..models.filters import Filter
from ..models.table import ParseResult, Table
from ..utils.logger import get_logger
from .cleaning_service import analyze, clean, generate_cleaning_preview
from .export_service import convert_to_csv
from .filter_service import mismatched_filters, sync_category_filters
from .kpi_service import build_dashboard, build_report_presets, detect_kpi_columns
from .parser_service import parse_file
from .type_inference import refresh_unique_values

log = get_logger("service.dataset")


# --- Data Models ---
@dataclass
class Dataset:
    dataset_id: str
    table: Table
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cleaning_runs: int = 0

    def to_dict(self, include_rows: bool = False) -> Dict[str, Any]:
        data = {
            "dataset_id": self.dataset_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "cleaning_runs": self.cleaning_runs,
            "kpi_config": detect_kpi_columns(self.table.columns).to_dict(),
            "report_presets": [p.to_dict() for p in build_report_presets(self.table.columns)],
        }
        data.update(self.table.to_dict(include_rows=include_rows))
        return data


class DatasetNotFound(KeyError):
    pass


# --- In-memory state ---
DATASETS: Dict[str, Dataset] = {}
_LOCK = Lock()


def register_upload(content: bytes, filename: str) -> Tuple[ParseResult, Optional[Dataset]]:
    """Parse an upload and keep the table when parsing succeeds."""
    result = parse_file(content, filename)
    if not result.success:
        return result, None

    dataset = Dataset(dataset_id=uuid.uuid4().hex, table=result.data)
    with _LOCK:
        DATASETS[dataset.dataset_id] = dataset
    log.info(f"Registered dataset {dataset.dataset_id} from '{filename}' ({dataset.table.total_rows} rows)")
    return result, dataset


def get_dataset(dataset_id: str) -> Dataset:
    with _LOCK:
        dataset = DATASETS.get(dataset_id)
    if dataset is None:
        raise DatasetNotFound(dataset_id)
    return dataset


def delete_dataset(dataset_id: str) -> None:
    with _LOCK:
        removed = DATASETS.pop(dataset_id, None)
    if removed is None:
        raise DatasetNotFound(dataset_id)
    log.info(f"Deleted dataset {dataset_id}")


def dashboard_for(
    dataset_id: str,
    filters: Sequence[Filter] = (),
    config: Optional[KpiConfig] = None,
    chart: Optional[ChartConfig] = None,
) -> Dict[str, Any]:
    table = get_dataset(dataset_id).table
    filters = sync_category_filters(filters, table.columns)
    for f in mismatched_filters(filters, table.columns):
        log.warning(f"Filter {f.id} targets '{f.column_name}' which is missing or not of type {f.column_type.value}")
    data = build_dashboard(table.rows, table.columns, filters, config, chart)
    data["filters"] = [_filter_state(f) for f in filters]
    return data


def _filter_state(f: Filter) -> Dict[str, Any]:
    state = dict(vars(f))
    state["column_type"] = f.column_type.value
    for key in ("date_from", "date_to"):
        if isinstance(state.get(key), datetime):
            state[key] = state[key].isoformat()
    return state


def quality_for(dataset_id: str) -> CleaningSummary:
    table = get_dataset(dataset_id).table
    return analyze(table.rows, table.columns)


def preview_for(dataset_id: str, options: CleaningOptions) -> CleaningPreview:
    table = get_dataset(dataset_id).table
    return generate_cleaning_preview(table.rows, table.columns, options)


def apply_cleaning(dataset_id: str, options: CleaningOptions) -> CleaningResult:
    """Clean the stored rows in place of the old ones and refresh category values."""
    dataset = get_dataset(dataset_id)
    rows, result = clean(dataset.table.rows, dataset.table.columns, options)
    columns = refresh_unique_values(dataset.table.columns, rows)
    with _LOCK:
        dataset.table.rows = rows
        dataset.table.columns = columns
        dataset.cleaning_runs += 1
        dataset.updated_at = datetime.now(timezone.utc)
    log.info(f"Dataset {dataset_id} cleaned: {result.removed_rows} rows removed, {result.modified_cells} cells modified")
    return result


def export_csv(dataset_id: str) -> str:
    table = get_dataset(dataset_id).table
    return convert_to_csv(table.rows, table.columns)


def list_datasets() -> List[Dict[str, Any]]:
    with _LOCK:
        items = list(DATASETS.values())
    return [
        {
            "dataset_id": d.dataset_id,
            "file_name": d.table.file_name,
            "total_rows": d.table.total_rows,
            "updated_at": d.updated_at.isoformat(),
        }
        for d in items
    ]
