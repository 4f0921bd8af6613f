"""
Unit tests for the snow CLI executor and the object catalog command lines.

The executor tests run the current Python interpreter in place of ``snow``.
"""

import asyncio
import os
import sys

import pytest

from snowproxy.core.config import SnowCLIConfig
from snowproxy.infrastructure import (
    NOT_FOUND_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    CommandResult,
    ExecutionOptions,
    FakeCommandExecutor,
    ObjectCatalog,
    SnowCLIExecutor,
    build_scope,
    create_executor,
    normalize_object_type,
    qualified_name,
)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


class TestBuildArgs:
    """Global flags are prepended to every command."""

    def test_defaults_are_applied(self):
        executor = SnowCLIExecutor(connection="dev", warehouse="wh", role="analyst")

        assert executor.build_args(["object", "list", "table"]) == [
            "--connection", "dev",
            "--warehouse", "wh",
            "--role", "analyst",
            "object", "list", "table",
        ]

    def test_call_options_override_defaults(self):
        executor = SnowCLIExecutor(connection="dev", role="analyst")

        args = executor.build_args(["sql"], ExecutionOptions(connection="qa"))

        assert args == ["--connection", "qa", "--role", "analyst", "sql"]

    def test_no_flags_without_settings(self):
        assert SnowCLIExecutor().build_args(["sql"]) == ["sql"]

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError):
            SnowCLIExecutor(timeout=0)

    def test_create_executor_from_config(self):
        executor = create_executor(SnowCLIConfig(connection="c1", timeout=5.0))

        assert executor.timeout == 5.0
        assert executor.build_args([])[:2] == ["--connection", "c1"]


class TestExecute:
    """Subprocess execution."""

    def test_captures_output_and_exit_code(self):
        executor = SnowCLIExecutor(command=sys.executable, timeout=30.0)
        script = "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"

        result = run_async(executor.execute(["-c", script]))

        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"
        assert result.exit_code == 3
        assert not result.ok

    def test_timeout_kills_process(self):
        executor = SnowCLIExecutor(command=sys.executable, timeout=30.0)

        result = run_async(
            executor.execute(["-c", "import time; time.sleep(10)"], timeout=0.5)
        )

        assert result.exit_code == TIMEOUT_EXIT_CODE
        assert result.timed_out
        assert "timed out after 0.5 seconds" in result.stderr

    def test_cancel_kills_and_reaps_process(self, tmp_path):
        executor = SnowCLIExecutor(command=sys.executable, timeout=30.0)
        pid_file = tmp_path / "pid"
        script = (
            "import os, pathlib, time; "
            f"pathlib.Path({str(pid_file)!r}).write_text(str(os.getpid())); "
            "time.sleep(30)"
        )

        async def cancel_while_running():
            task = asyncio.create_task(executor.execute(["-c", script]))
            for _ in range(200):
                if pid_file.exists() and pid_file.read_text():
                    break
                await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        run_async(cancel_while_running())

        with pytest.raises(ProcessLookupError):
            os.kill(int(pid_file.read_text()), 0)

    def test_missing_executable(self):
        executor = SnowCLIExecutor(command="definitely-not-a-real-snow-binary")

        result = run_async(executor.execute(["sql", "-q", "select 1"]))

        assert result.exit_code == NOT_FOUND_EXIT_CODE
        assert result.stdout == ""


class TestObjectCatalog:
    """Command lines built by ObjectCatalog."""

    def test_list_objects_args(self):
        fake = FakeCommandExecutor()
        catalog = ObjectCatalog(fake, timeout=9.0)

        run_async(catalog.list_objects("table", "DB", "PUBLIC", like="ORD%"))

        call = fake.calls[0]
        assert call.args == [
            "object", "list", "table", "--terse", "--in", "DB.PUBLIC", "--like", "ORD%",
        ]
        assert call.timeout == 9.0

    def test_describe_args(self):
        fake = FakeCommandExecutor()

        run_async(ObjectCatalog(fake).describe("view", "V1", database="DB"))

        assert fake.calls[0].args == ["object", "describe", "view", "V1", "--in", "DB"]

    def test_show_create_query(self):
        fake = FakeCommandExecutor()

        run_async(ObjectCatalog(fake).show_create("materialized view", "DB.S.MV"))

        assert fake.queries == ["SHOW CREATE MATERIALIZED_VIEW DB.S.MV"]
        assert fake.calls[0].args[-2:] == ["--format", "JSON"]

    def test_run_sql_with_format(self):
        fake = FakeCommandExecutor()

        run_async(ObjectCatalog(fake).run_sql("SHOW TABLES", output_format="JSON"))

        assert fake.calls[0].args == ["sql", "-q", "SHOW TABLES", "--format", "JSON"]

    def test_list_names_skips_rows_without_name(self):
        fake = FakeCommandExecutor().when(
            "object", "list", "schema", stdout="name\tcomment\nPUBLIC\t\n\tx\nRAW\t\n"
        )

        names = run_async(ObjectCatalog(fake).list_names("schema", "DB"))

        assert names == ["PUBLIC", "RAW"]

    def test_list_names_failure_is_empty(self):
        fake = FakeCommandExecutor(CommandResult(stdout="", stderr="boom", exit_code=1))

        assert run_async(ObjectCatalog(fake).list_names("table")) == []

    def test_fetch_ddl_failure_is_empty(self):
        fake = FakeCommandExecutor().when_query(r"^SHOW CREATE", stderr="nope", exit_code=1)

        assert run_async(ObjectCatalog(fake).fetch_ddl("table", "DB.S.T")) == ""

    def test_helpers(self):
        assert qualified_name("DB", None, "T") == "DB.T"
        assert build_scope() == ""
        assert build_scope("DB", "S") == "DB.S"
        assert normalize_object_type(" file format ") == "FILE_FORMAT"
