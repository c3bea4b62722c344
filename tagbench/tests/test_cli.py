"""
Tests for the tagbench command line entry point.

End-to-end runs use the in-process DuckDB engine with small sizes.
"""

import json
import logging

import pytest

from tagbench import run_benchmarks
from tagbench.run_benchmarks import build_config, build_parser, main
from tagbench.settings import get_settings

SMALL_RUN = [
    "--database", "duckdb",
    "--data-size", "20",
    "--iterations", "2",
    "--warmup-iterations", "0",
    "--write-size", "3",
    "--seed", "11",
]


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ============================================================================
# Parser
# ============================================================================


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.type == "all"
        assert args.database == "postgresql"
        assert args.model is None
        assert args.data_size is None
        assert args.output is None
        assert args.json_logs is False

    def test_log_level_is_case_insensitive(self):
        assert build_parser().parse_args(["--log-level", "debug"]).log_level == "DEBUG"

    @pytest.mark.parametrize(
        "argv",
        [
            ["--type", "read"],
            ["--database", "mysql"],
            ["--model", "graph"],
            ["--data-size", "lots"],
        ],
    )
    def test_rejects_invalid_arguments(self, argv):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(argv)

        assert exc_info.value.code == 2


class TestBuildConfig:
    def test_flags_override_settings(self):
        args = build_parser().parse_args(
            ["--type", "search", "--database", "both", "--model", "jsonb", *SMALL_RUN[2:]]
        )

        config = build_config(args, get_settings())

        assert config.benchmark_type == "search"
        assert config.database == "both"
        assert config.model == "jsonb"
        assert config.data_size == 20
        assert config.search_iterations == 2
        assert config.warmup_iterations == 0
        assert config.write_test_size == 3
        assert config.seed == 11

    def test_settings_fill_missing_flags(self, monkeypatch):
        monkeypatch.setenv("TAGBENCH_DATA_SIZE", "1500")
        monkeypatch.setenv("TAGBENCH_BATCH_SIZE", "300")

        config = build_config(build_parser().parse_args([]), get_settings())

        assert config.data_size == 1500
        assert config.batch_size == 300
        assert config.search_iterations == 1000
        assert config.seed is None


# ============================================================================
# main
# ============================================================================


class TestMain:
    def test_successful_run(self, capsys):
        main(SMALL_RUN)

        out = capsys.readouterr().out
        assert out.startswith("Database Tags Benchmark Starting...")
        assert "data_size=20" in out
        assert "\n=== SEARCH BENCHMARK: DUCKDB NORMALIZED ===" in out
        assert "[DUCKDB-ARRAY] Single tag (engineer): avg=" in out
        assert "=== Benchmark Results ===" in out
        assert out.rstrip().endswith("Benchmark completed successfully!")

    def test_json_report_written(self, tmp_path, capsys):
        output = tmp_path / "results" / "bench.json"

        main([*SMALL_RUN, "--type", "search", "--output", str(output)])

        data = json.loads(output.read_text())
        assert [p["label"] for p in data["pair_results"]] == [
            "DUCKDB-NORMALIZED",
            "DUCKDB-JSONB",
            "DUCKDB-ARRAY",
        ]
        assert f"Report saved to: {output}" in capsys.readouterr().out

    def test_markdown_report_written(self, tmp_path):
        output = tmp_path / "bench.md"

        main([*SMALL_RUN, "--type", "write", "--model", "array", "--output", str(output)])

        content = output.read_text()
        assert content.startswith("<!-- Generated by tagbench on ")
        assert "# Tag Storage Benchmark Report" in content
        assert "| DUCKDB-ARRAY |" in content

    def test_json_logs_carry_run_id(self, capsys):
        main([*SMALL_RUN, "--type", "search", "--model", "array", "--json-logs"])

        entries = [
            json.loads(line)
            for line in capsys.readouterr().err.splitlines()
            if line.startswith("{")
        ]
        assert entries
        in_run = [e for e in entries if e["message"] == "Benchmark started"]
        assert in_run and in_run[0]["run_id"]

    def test_failed_run_exits_with_error(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([*SMALL_RUN, "--data-size", "0"])

        assert exc_info.value.code == 1
        assert "ERROR: Benchmark failed: " in capsys.readouterr().err

    def test_runner_exception_exits_with_error(self, monkeypatch, capsys):
        async def failing_run(self):
            raise RuntimeError("connection refused")

        monkeypatch.setattr(run_benchmarks.BenchmarkRunner, "run", failing_run)

        with pytest.raises(SystemExit) as exc_info:
            main(SMALL_RUN)

        assert exc_info.value.code == 1
        assert "ERROR: Benchmark failed: connection refused" in capsys.readouterr().err

    def test_invalid_settings_exit(self, monkeypatch, capsys):
        monkeypatch.setenv("TAGBENCH_SEARCH_ITERATIONS", "0")

        with pytest.raises(SystemExit) as exc_info:
            main(SMALL_RUN)

        assert exc_info.value.code == 1
        assert "ERROR: Invalid settings" in capsys.readouterr().err
