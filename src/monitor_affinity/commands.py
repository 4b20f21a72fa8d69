"""Turn a command template plus selected monitors into process specs."""

from __future__ import annotations

from typing import Sequence

from .models import CommandTemplate, Monitor, ProcessSpec


def build_spec(template: CommandTemplate, monitor: Monitor) -> ProcessSpec:
    """Materialize *template* for one monitor."""
    args = tuple(a.replace(template.placeholder, monitor.name) for a in template.args)
    env = {template.env_var: monitor.name} if template.env_var else {}
    return ProcessSpec(
        program=template.program,
        argv=(template.program, *args),
        env=env,
        monitor=monitor.name,
    )


def materialize(template: CommandTemplate, selection: Sequence[Monitor]) -> list[ProcessSpec]:
    """Return the process specs to launch for an already-resolved selection.

    Without ``allow_multiple`` only the first selected monitor gets a
    process. An empty selection yields no specs.
    """
    if not selection:
        return []
    targets = selection if template.allow_multiple else selection[:1]
    return [build_spec(template, m) for m in targets]
