"""Unit tests for table rendering utilities."""

from liberate.domain.models import (
    AssetKind,
    ConversionResult,
    DetectedAsset,
    PartialResult,
    PipelineRun,
    ResultKind,
    ResultStatus,
    Stage,
    TransferOutcome,
)
from liberate.ui.tables import (
    create_asset_table,
    create_outcome_table,
    create_runs_table,
    format_kind_summary,
)


def _asset(kind: AssetKind, name: str) -> DetectedAsset:
    return DetectedAsset(kind=kind, name=name, source_path=f"src/{name}")


class TestAssetTable:
    """Test asset table creation."""

    def test_creates_table_with_correct_columns(self):
        """Table should have all required columns."""
        table = create_asset_table([_asset(AssetKind.TABLE, "users")])

        column_headers = [col.header for col in table.columns]
        assert column_headers == ["Kind", "Name", "Source", "Details"]
        assert table.row_count == 1

    def test_table_title_includes_count(self):
        """Table title should include asset count."""
        assets = [_asset(AssetKind.TABLE, "users"), _asset(AssetKind.TABLE, "posts")]

        table = create_asset_table(assets)

        assert "2 total" in table.title


class TestOutcomeTable:
    """Test transfer outcome tables."""

    def test_one_row_per_outcome(self):
        outcomes = [
            TransferOutcome(relative_path="a.txt", succeeded=True),
            TransferOutcome(relative_path="b.txt", succeeded=False, error_detail="550"),
        ]

        table = create_outcome_table(outcomes)

        assert table.row_count == 2


class TestRunsTable:
    """Test stored run listing."""

    def test_runs_with_and_without_conversion(self):
        converted = PipelineRun(
            run_id="run-one",
            stage=Stage.EXPORTED,
            conversion=PartialResult(
                routes=[
                    ConversionResult(kind=ResultKind.ROUTE, name="a", content="x"),
                    ConversionResult(kind=ResultKind.ROUTE, name="b", status=ResultStatus.FAILED),
                ]
            ),
        )
        pending = PipelineRun(run_id="run-two", stage=Stage.ANALYZED)

        table = create_runs_table({"/p/one": converted, "/p/two": pending})

        assert table.row_count == 2
        assert "Routes" in [col.header for col in table.columns]


class TestKindSummary:
    """Test kind summary formatting."""

    def test_formats_summary_correctly(self):
        """Summary should list counts by kind."""
        assets = [
            _asset(AssetKind.TABLE, "users"),
            _asset(AssetKind.TABLE, "posts"),
            _asset(AssetKind.FUNCTION_HANDLER, "api"),
        ]

        summary = format_kind_summary(assets)

        assert summary == "1 function_handler, 2 table"

    def test_handles_empty_list(self):
        """Empty asset list should return empty summary."""
        assert format_kind_summary([]) == ""
