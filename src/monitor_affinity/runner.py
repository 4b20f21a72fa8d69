"""Run configured rules: resolve monitors, then print or launch commands."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Sequence

from .affinity import describe, resolve
from .commands import materialize
from .config import Rule
from .models import Monitor, ProcessSpec

log = logging.getLogger(__name__)


def spawn(spec: ProcessSpec) -> subprocess.Popen:
    """Start *spec* detached from our session; never waited on."""
    return subprocess.Popen(
        list(spec.argv),
        env={**os.environ, **spec.env},
        stdin=subprocess.DEVNULL,
        start_new_session=True,
    )


class Runner:
    """Applies rules to monitor snapshots.

    Keeps track of what it launched per rule so that :meth:`refresh` can
    restart only the rules whose selected monitors changed.
    """

    def __init__(
        self,
        rules: Sequence[Rule],
        *,
        dry_run: bool = False,
        echo: Callable[[str], None] = print,
    ) -> None:
        self.rules = list(rules)
        self.dry_run = dry_run
        self._echo = echo
        self._selected: dict[int, list[str]] = {}
        self._processes: dict[int, list[subprocess.Popen]] = {}

    def selected(self, index: int) -> list[str] | None:
        """Monitor names the rule at *index* was last launched for."""
        return self._selected.get(index)

    def _targets(self, rule: Rule, monitors: Sequence[Monitor]) -> tuple[list[Monitor], list[ProcessSpec]]:
        selection = resolve(rule.terms, monitors)
        return selection, materialize(rule.template, selection)

    def run(self, monitors: Sequence[Monitor]) -> bool:
        """Launch every rule against *monitors*. Returns False if any spawn failed."""
        ok = True
        for index in range(len(self.rules)):
            ok = self._apply(index, monitors) and ok
        return ok

    def refresh(self, monitors: Sequence[Monitor]) -> bool:
        """Re-run the rules whose selection differs from the last run."""
        ok = True
        for index, rule in enumerate(self.rules):
            _, specs = self._targets(rule, monitors)
            names = [s.monitor for s in specs]
            if names == self._selected.get(index):
                log.debug("Rule %s: targets unchanged (%s)", rule.name, ", ".join(names))
                continue
            self._terminate(index)
            ok = self._apply(index, monitors) and ok
        return ok

    def stop(self) -> None:
        """Terminate every process this runner launched that is still alive."""
        for index in list(self._processes):
            self._terminate(index)

    def _apply(self, index: int, monitors: Sequence[Monitor]) -> bool:
        rule = self.rules[index]
        selection, specs = self._targets(rule, monitors)
        # Monitors that actually got a process
        started: list[str] = []
        self._selected[index] = started

        terms = " ".join(str(t) for t in rule.terms)
        log.info("Rule %s [%s]: selected %s", rule.name, terms, describe(selection))
        if not specs:
            log.info("Rule %s: no monitor matched, nothing to run", rule.name)
            return True

        ok = True
        launched: list[subprocess.Popen] = []
        for spec in specs:
            if self.dry_run:
                self._echo(str(spec))
                started.append(spec.monitor)
                continue
            try:
                launched.append(spawn(spec))
            except OSError as e:
                log.error("Rule %s: failed to start %s on %s: %s", rule.name, spec.program, spec.monitor, e)
                ok = False
                continue
            started.append(spec.monitor)
            log.info("Rule %s: started %s on %s (pid %d)", rule.name, spec.program, spec.monitor, launched[-1].pid)
        self._processes[index] = launched
        return ok

    def _terminate(self, index: int) -> None:
        rule = self.rules[index]
        for proc in self._processes.pop(index, []):
            if proc.poll() is not None:
                continue
            log.info("Rule %s: stopping pid %d", rule.name, proc.pid)
            try:
                proc.terminate()
            except OSError as e:
                log.warning("Rule %s: could not stop pid %d: %s", rule.name, proc.pid, e)
