#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Exceptions raised by the recipe engine.

Every error derives from :class:`RecipeError` so callers can catch the
whole family at once.  ``TrainingError`` wraps a step-level failure and
points at the failing step.
"""

from typing import Optional, Type


class RecipeError(Exception):
    """Base class for all tidyprep errors."""


class SelectionError(RecipeError):
    """A selector matched no columns, or named a column that does not exist."""


class ColumnTypeError(SelectionError):
    """A step selected columns of a type it cannot handle."""


class InvalidArgumentError(RecipeError, ValueError):
    """Bad step or recipe configuration, detected at construction."""


class NotTrainedError(RecipeError):
    """A step or recipe was applied before being trained."""


class MissingColumnError(RecipeError, KeyError):
    """Data handed to a trained step lacks a column the step depends on."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ''


class NameCollisionError(RecipeError):
    """A step would create a column whose name already exists."""


class RoleNotFoundError(RecipeError):
    """``update_role`` was asked to replace a role a column does not carry."""


class StepFitError(RecipeError):
    """A step could not estimate its parameters from the training data."""


class ImputeError(StepFitError):
    """Imputation has no estimate for a column."""


class TrainingError(RecipeError):
    """
    A step failed while the recipe was being trained.

    Attributes
    ----------
    step_index : int
        Zero-based position of the failing step.
    step_id : str
        Id of the failing step.
    partial_recipe : Recipe or None
        The recipe with every step before ``step_index`` trained.  Training
        it again resumes from the failing step.
    cause : Exception or None
        The step-level error (e.g. ``NameCollisionError``), also chained as
        ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        step_index: int,
        step_id: str,
        partial_recipe: Optional['Recipe'] = None,
    ):
        super().__init__(message)
        self.step_index = step_index
        self.step_id = step_id
        self.partial_recipe = partial_recipe

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    def caused_by(self, *exc_types: Type[BaseException]) -> bool:
        """True if the step-level error is an instance of any of ``exc_types``."""
        return isinstance(self.__cause__, exc_types)


class RoleAlreadyPresentWarning(UserWarning):
    """``add_role`` found the role already present; the column was left as is."""
