"""Command runner for coordinating CLI execution.

Manages logging configuration, backend construction, cache lifetime and
error handling for command execution.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import nullcontext
from typing import Sequence

import click

from PrimoSearch.backend import Backend, RecordCollection
from PrimoSearch.backend.registry import build_backend
from PrimoSearch.cli.output import render_json, render_text
from PrimoSearch.config import AppConfig
from PrimoSearch.core.models import FilterSpec
from PrimoSearch.core.query import ParamBag, Query
from PrimoSearch.storage import create_response_cache
from PrimoSearch.utils.log import configure_logging, log


class CommandRunner:
    """Orchestrates command execution with proper resource management."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def run_search(
        self,
        action: str,
        *,
        lookfor: str,
        index: str = "AllFields",
        page: int = 1,
        limit: int = 20,
        sort: str | None = None,
        filters: Sequence[FilterSpec] = (),
        as_json: bool = False,
    ) -> None:
        """Run one search and print the page of results.

        Raises:
            click.Abort: When the search fails.
        """
        offset = (max(1, page) - 1) * limit
        params = ParamBag()
        params.set("onCampus", self.config.primo.on_campus)
        if sort:
            params.set("sort", sort)
        if filters:
            params.set("filterList", list(filters))
        if self.config.primo.highlighting:
            params.set("highlight", True)
            params.set("highlightStart", self.config.primo.highlight_start)
            params.set("highlightEnd", self.config.primo.highlight_end)

        def execute(backend: Backend) -> RecordCollection:
            log.debug("Searching %s=%r offset=%d limit=%d", index, lookfor, offset, limit)
            return backend.search(Query(handler=index, string=lookfor), offset, limit, params)

        collection = self._run(action, execute)
        click.echo(render_json(collection) if as_json else render_text(collection, offset=offset), nl=False)

    def run_record(self, action: str, *, record_id: str, as_json: bool = False) -> None:
        """Fetch one record by id and print it.

        Raises:
            click.Abort: When the lookup fails.
        """
        params = ParamBag({"onCampus": self.config.primo.on_campus})
        collection = self._run(action, lambda backend: backend.retrieve(record_id, params))
        if not as_json and not len(collection):
            log.warning("Record not found: %s", record_id)
        click.echo(render_json(collection) if as_json else render_text(collection), nl=False)

    def _run(self, action: str, execute: Callable[[Backend], RecordCollection]) -> RecordCollection:
        log_path = configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
        )
        if log_path:
            log.debug("Writing log file %s", log_path)
        try:
            db_manager, cache = create_response_cache(self.config)
            with db_manager or nullcontext():
                return execute(build_backend(self.config, cache=cache))
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("%s failed: %s", action.capitalize(), e)
            raise click.Abort from e
