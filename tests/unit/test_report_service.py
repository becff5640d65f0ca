"""Tests for report persistence."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from src.services.errors import PersistenceError
from src.services.reports import ReportService, SaveReportRequest
from src.services.viz.models import KpiConfig, PivotConfig, parse_visualization_config


def _row(**overrides):
    row = {
        "id": "rep-1",
        "name": "Regional sales",
        "description": None,
        "sql_statement_id": "st-1",
        "sql_query": "SELECT region, qty FROM sales",
        "visualization_config": json.dumps({"type": "bar", "xAxis": "region", "yAxes": ["qty"]}),
        "created_at": None,
        "updated_at": None,
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_list_reports_parses_config(mock_query, settings):
    mock_query.return_value = [_row()]
    reports = await ReportService(settings).list_reports()

    assert len(reports) == 1
    assert reports[0].sql_statement_ref == "st-1"
    assert reports[0].visualization_config.y_axes == ["qty"]
    assert "OFFSET ? ROWS FETCH NEXT ? ROWS ONLY" in mock_query.call_args[0][1]
    assert mock_query.call_args[0][2] == (0, 50)


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_legacy_config_upgraded_on_read(mock_query, settings):
    mock_query.return_value = [
        _row(visualization_config=json.dumps({"type": "bar", "xAxis": "region", "yAxis": "qty"}))
    ]
    report = await ReportService(settings).get_report("rep-1")
    assert report.visualization_config.y_axes == ["qty"]


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_missing_type_defaults_to_table(mock_query, settings):
    mock_query.return_value = [_row(visualization_config="{}")]
    report = await ReportService(settings).get_report("rep-1")
    assert report.visualization_config.type == "table"


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_get_report_not_found(mock_query, settings):
    mock_query.return_value = []
    assert await ReportService(settings).get_report("nope") is None


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_insert", new_callable=AsyncMock)
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_save_inserts_new_report(mock_query, mock_insert, settings):
    mock_query.return_value = []
    mock_insert.return_value = {"success": True, "rows_affected": 1, "error": None}
    config = PivotConfig(pivot_rows=["region"], pivot_measures=[{"field": "qty", "agg": "avg"}])
    request = SaveReportRequest(id="rep-7", name="Pivot", sql_text="SELECT 1", visualization_config=config)

    report_id = await ReportService(settings).save_report(request)

    assert report_id == "rep-7"
    sql, params = mock_insert.call_args[0][1], mock_insert.call_args[0][2]
    assert sql.startswith("INSERT INTO dbo.Reports")
    stored = json.loads(params[5])
    assert stored["pivotMeasures"] == [{"field": "qty", "agg": "avg"}]
    assert parse_visualization_config(stored) == config


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_insert", new_callable=AsyncMock)
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_save_updates_existing_report(mock_query, mock_insert, settings):
    mock_query.return_value = [{"id": "rep-1"}]
    mock_insert.return_value = {"success": True, "rows_affected": 1, "error": None}
    request = SaveReportRequest(id="rep-1", name="KPI", visualization_config=KpiConfig())

    await ReportService(settings).save_report(request)
    assert mock_insert.call_args[0][1].startswith("UPDATE dbo.Reports")


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_insert", new_callable=AsyncMock)
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_save_round_trips_through_list(mock_query, mock_insert, settings):
    mock_query.return_value = []
    mock_insert.return_value = {"success": True, "rows_affected": 1, "error": None}
    request = SaveReportRequest(
        id="rep-3",
        name="Sales",
        sql_statement_ref="st-1",
        sql_text="SELECT region, qty FROM sales",
        visualization_config=parse_visualization_config(
            {"type": "kpi", "rules": [{"operator": ">", "threshold": 5, "color": "green"}]}
        ),
    )
    svc = ReportService(settings)
    await svc.save_report(request)

    params = mock_insert.call_args[0][2]
    mock_query.return_value = [
        _row(
            id=params[0],
            name=params[1],
            description=params[2],
            sql_statement_id=params[3],
            sql_query=params[4],
            visualization_config=params[5],
        )
    ]
    listed = (await svc.list_reports())[0]
    assert listed.model_dump(exclude={"created_at", "updated_at"}) == request.model_dump()


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_insert", new_callable=AsyncMock)
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_failed_write_raises_persistence_error(mock_query, mock_insert, settings):
    mock_query.return_value = []
    mock_insert.return_value = {"success": False, "rows_affected": 0, "error": "constraint violation"}
    request = SaveReportRequest(name="X", visualization_config=KpiConfig())

    with pytest.raises(PersistenceError, match="constraint violation"):
        await ReportService(settings).save_report(request)


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_query", new_callable=AsyncMock)
async def test_driver_error_wrapped(mock_query, settings):
    mock_query.side_effect = RuntimeError("login failed")
    with pytest.raises(PersistenceError) as exc_info:
        await ReportService(settings).list_reports()
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
@patch("src.services.reports.service.execute_insert", new_callable=AsyncMock)
async def test_delete_report(mock_insert, settings):
    mock_insert.return_value = {"success": True, "rows_affected": 1, "error": None}
    await ReportService(settings).delete_report("rep-1")
    assert mock_insert.call_args[0][2] == ("rep-1",)
