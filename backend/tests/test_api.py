from fastapi.testclient import TestClient

from sales_dashboard.main import app


client = TestClient(app)

DIRTY_CSV = (
    "Date,Customer,Product,Quantity,Total,Region\n"
    "2024-01-01,Alice,Laptop Pro,1,100,North\n"
    "2024-01-01,Alice,Laptop Pro,1,100,North\n"
    "2024-01-02,  Bob ,Desk Lamp,2,200,south\n"
    "2024-01-03,Carol,Desk Lamp,3,300,N/A\n"
    "2024-01-04,Alice,Laptop Pro,1,400,North\n"
    "2024-01-05,Bob,Desk Lamp,2,500,South\n"
    "2024-01-06,Carol,Laptop Pro,3,600,North\n"
).encode("utf-8")


def upload(content: bytes = DIRTY_CSV, name: str = "sales.csv") -> dict:
    response = client.post("/datasets/upload", files={"file": (name, content, "text/csv")})
    assert response.status_code == 200, response.text
    return response.json()


def test_root_lists_endpoints() -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert "/datasets/upload" in response.json()["endpoints"]


def test_upload_returns_columns_and_kpi_config() -> None:
    data = upload()

    assert data["status"] == "success"
    assert data["total_rows"] == 7
    types = {c["name"]: c["type"] for c in data["columns"]}
    assert types["Date"] == "date"
    assert types["Customer"] == "category"
    assert types["Total"] == "number"
    assert data["kpi_config"]["sales_column"] == "Total"
    assert "rows" not in data


def test_upload_failures_carry_error_code() -> None:
    response = client.post("/datasets/upload", files={"file": ("empty.csv", b"", "text/csv")})
    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "CSV_EMPTY"

    response = client.post("/datasets/upload", files={"file": ("notes.pdf", b"%PDF", "application/pdf")})
    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "CSV_INVALID"


def test_unknown_dataset_is_404() -> None:
    assert client.get("/datasets/does-not-exist").status_code == 404
    assert client.get("/datasets/does-not-exist/quality").status_code == 404
    assert client.post("/datasets/does-not-exist/clean").status_code == 404


def test_dashboard_with_filters() -> None:
    dataset_id = upload()["dataset_id"]
    payload = {
        "filters": [
            {"column_type": "number", "id": "f1", "column_name": "Total", "operator": "between", "value": 100, "value_to": 300},
            {"column_type": "text", "id": "f2", "column_name": "Product", "operator": "contains", "value": "lamp"},
        ],
        "chart": {"group_by_column": "Product", "aggregation": "sum"},
        "include_rows": True,
    }

    response = client.post(f"/datasets/{dataset_id}/dashboard", json=payload)

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["filtered_row_count"] == 2
    assert data["active_filters"] == 2
    assert data["kpis"]["total_sales"] == 500.0
    assert data["chart"]["data"] == [{"name": "Desk Lamp", "value": 500.0}]
    assert [r["Date"] for r in data["rows"]] == ["2024-01-02T00:00:00", "2024-01-03T00:00:00"]


def test_dashboard_without_body_uses_detected_config() -> None:
    dataset_id = upload()["dataset_id"]
    response = client.post(f"/datasets/{dataset_id}/dashboard")

    assert response.status_code == 200
    data = response.json()
    assert data["kpis"]["total_orders"] == 7
    assert data["kpis"]["total_sales"] == 2200.0
    assert "rows" not in data


def test_quality_preview_clean_and_export() -> None:
    dataset_id = upload()["dataset_id"]

    quality = client.get(f"/datasets/{dataset_id}/quality").json()
    assert quality["duplicate_rows"] == [1]
    assert quality["missing_values_by_column"] == {"Region": [3]}

    preview = client.post(f"/datasets/{dataset_id}/clean/preview", json={}).json()
    assert preview["estimated_removals"] == 1

    options = {
        "normalize_case": True,
        "case_strategy": "titlecase",
        "handle_missing_values": True,
        "missing_value_strategy": "fill_custom",
        "custom_fill_value": "Unknown",
        "columns_to_clean": ["Customer", "Region"],
    }
    result = client.post(f"/datasets/{dataset_id}/clean", json=options).json()
    assert result["success"] is True
    assert result["removed_rows"] == 1
    assert result["cleaned_row_count"] == 6

    again = client.post(f"/datasets/{dataset_id}/clean", json=options).json()
    assert again["changes"] == []

    detail = client.get(f"/datasets/{dataset_id}").json()
    region = next(c for c in detail["columns"] if c["name"] == "Region")
    assert detail["total_rows"] == 6
    assert detail["cleaning_runs"] == 2
    assert region["type"] == "text"

    response = client.get(f"/datasets/{dataset_id}/export/csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.splitlines()
    assert lines[0] == "Date,Customer,Product,Quantity,Total,Region"
    assert lines[2] == "2024-01-02,Bob,Desk Lamp,2,200,South"
    assert lines[3] == "2024-01-03,Carol,Desk Lamp,3,300,Unknown"


def test_invalid_cleaning_strategy_is_rejected() -> None:
    dataset_id = upload()["dataset_id"]
    response = client.post(f"/datasets/{dataset_id}/clean", json={"missing_value_strategy": "guess"})
    assert response.status_code == 422


def test_delete_dataset() -> None:
    dataset_id = upload()["dataset_id"]
    assert client.delete(f"/datasets/{dataset_id}").status_code == 200
    assert client.get(f"/datasets/{dataset_id}").status_code == 404
