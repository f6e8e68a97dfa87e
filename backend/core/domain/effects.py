"""
core.domain.effects — Post-commit side-effect list.

Services never notify or delete blobs inline.  Instead they append the
side effects of a mutation to a ``PostCommitEffects`` list and call
``dispatch()`` once the list is complete.  ``dispatch`` hands the list to
``transaction.on_commit`` so that:

* nothing runs if the surrounding transaction rolls back;
* an effect that raises is logged and skipped, the remaining effects
  still run, and the committed state is never touched.

Usage::

    effects = PostCommitEffects(label="complaint.update_status")
    with transaction.atomic():
        ...mutate...
        effects.add("notify reporter", NotificationService.create, ...)
        effects.dispatch()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from django.db import transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Effect:
    """A named, deferred callable."""

    name: str
    fn: Callable[..., Any]
    args: tuple = ()
    kwargs: dict[str, Any] = field(default_factory=dict)

    def __call__(self) -> Any:
        return self.fn(*self.args, **self.kwargs)


class PostCommitEffects:
    """Ordered list of best-effort effects attached to one mutation."""

    def __init__(self, label: str = "") -> None:
        self.label = label
        self._effects: list[Effect] = []

    def __len__(self) -> int:
        return len(self._effects)

    def __iter__(self):
        return iter(self._effects)

    def add(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._effects.append(Effect(name=name, fn=fn, args=args, kwargs=kwargs))

    def dispatch(self) -> None:
        """
        Schedule every effect to run after the current transaction commits.

        Outside of a transaction (autocommit) Django runs the callback
        immediately, which is the behaviour we want for read paths too.
        """
        if not self._effects:
            return
        effects = list(self._effects)
        self._effects.clear()
        transaction.on_commit(lambda: self.run_all(effects, label=self.label))

    @staticmethod
    def run_all(effects: list[Effect], *, label: str = "") -> int:
        """
        Run ``effects`` in order, isolating failures.

        Returns the number of effects that failed.
        """
        failures = 0
        for effect in effects:
            try:
                effect()
            except Exception:
                failures += 1
                logger.exception(
                    "Post-commit effect '%s' failed [%s]", effect.name, label or "-",
                )
        if failures:
            logger.warning(
                "%d of %d post-commit effect(s) failed [%s]",
                failures,
                len(effects),
                label or "-",
            )
        return failures
