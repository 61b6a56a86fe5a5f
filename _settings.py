"""
Settings management for chunklengths.

Tunables for streaming, parallelism and memory checks live on a single
``settings`` object. They can be changed in code, locally with
``settings.override(...)``, or before import through ``CHUNKLENGTHS_*``
environment variables.
"""

from __future__ import annotations

import os
import textwrap
import warnings
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field, fields
from types import GenericAlias
from typing import TYPE_CHECKING, Callable, NamedTuple, TypeGuard

if TYPE_CHECKING:
    from typing import Any, Self


ENV_PREFIX = "CHUNKLENGTHS_"


def _is_plain_type(obj: object) -> TypeGuard[type]:
    """Check if an object is a plain type (not a GenericAlias or union)."""
    return isinstance(obj, type) and not isinstance(obj, GenericAlias)


class RegisteredOption[T](NamedTuple):
    """A registered configuration option."""

    option: str
    default_value: T
    description: str
    validate: Callable[[T, SettingsManager], None]
    type: object

    def describe(self) -> str:
        type_str = self.type.__name__ if _is_plain_type(self.type) else str(self.type)
        doc = f"""\
        {self.option}: `{type_str}`
            {self.description} (default: `{self.default_value!r}`).
        """
        return textwrap.dedent(doc)


def env_var_name(option: str) -> str:
    return f"{ENV_PREFIX}{option.upper()}"


def check_and_get_environ_var[T](
    key: str,
    default_value: str,
    allowed_values: Iterable[str] | None = None,
    cast: Callable[[str], T] = lambda x: x,
) -> T:
    """Get an environment variable and cast it to a usable value.

    Parameters
    ----------
    key
        The environment variable name.
    default_value
        The value used when the variable is unset or not allowed.
    allowed_values
        Allowable string values, by default None (anything goes).
    cast
        Conversion from the string to the option's python value.

    Returns
    -------
    The cast value.
    """
    value = os.environ.get(key, default_value)
    if allowed_values is not None and value not in allowed_values:
        warnings.warn(
            f"Value {value!r} is not in allowed {list(allowed_values)} for environment "
            f"variable {key}. Default {default_value} will be used.",
            UserWarning,
        )
        value = default_value
    return cast(value)


def check_and_get_bool(option: str, default_value: bool) -> bool:
    """Get a boolean setting from environment variable (1 or 0)."""
    return check_and_get_environ_var(
        env_var_name(option), str(int(default_value)), ["0", "1"], lambda x: bool(int(x))
    )


def check_and_get_int(option: str, default_value: int) -> int:
    """Get an integer setting from environment variable."""
    return check_and_get_environ_var(env_var_name(option), str(int(default_value)), None, int)


def check_and_get_optional_int(option: str, default_value: int | None) -> int | None:
    """Get an optional integer setting from environment variable."""
    if os.environ.get(env_var_name(option)) is None:
        return default_value
    return check_and_get_int(option, default_value or 0)


_docstring = """
Settings for the chunklengths package.

The following options are available:

{options_description}

Use :func:`settings.override` for a local change or assign the attribute for a
global one, i.e. `chunklengths.settings.chunk_size = 1 << 20`. Environment
variables named `CHUNKLENGTHS_<OPTION>` are read once, when :mod:`chunklengths`
is imported. Booleans take 1 for `True` and 0 for `False`.
"""


@dataclass
class SettingsManager:
    """Manager for chunklengths configuration settings."""

    _registered_options: dict[str, RegisteredOption] = field(default_factory=dict)
    _config: dict[str, object] = field(default_factory=dict)

    def describe(
        self,
        option: str | Iterable[str] | None = None,
        *,
        should_print_description: bool = True,
    ) -> str:
        """Print and/or return a description of the option(s).

        Parameters
        ----------
        option
            Option(s) to be described, by default None (i.e., all options).
        should_print_description
            Whether or not to print the description in addition to returning it.
        """
        if option is None:
            option = list(self._registered_options)
        if isinstance(option, str):
            doc = self._registered_options[option].describe().rstrip("\n")
        else:
            doc = "\n".join(
                self.describe(k, should_print_description=False) for k in option
            )
        if should_print_description:
            print(doc)
        return doc

    def register[T](
        self,
        option: str,
        *,
        default_value: T,
        description: str,
        validate: Callable[[T, Self], None],
        option_type: object | None = None,
        get_from_env: Callable[[str, T], T] = lambda x, y: y,
    ) -> None:
        """Register an option so it can be set and described by end-users.

        Parameters
        ----------
        option
            Option name.
        default_value
            Default value of the option.
        description
            Description used in the docstring.
        validate
            A function which raises a `ValueError` or `TypeError` if the value is invalid.
        option_type
            Type shown in the description, otherwise `type(default_value)`.
        get_from_env
            Function of (option, default) returning the value of `CHUNKLENGTHS_<OPTION>`,
            or the default when unset. By default the environment is not consulted.
        """
        try:
            validate(default_value, self)
        except (ValueError, TypeError) as e:
            e.add_note(f"for option {option!r}")
            raise
        option_type = type(default_value) if option_type is None else option_type
        self._registered_options[option] = RegisteredOption(
            option, default_value, description, validate, option_type
        )
        value = get_from_env(option, default_value)
        validate(value, self)
        self._config[option] = value

    def __setattr__(self, option: str, val: object) -> None:
        """Set an option to a validated value.

        Raises
        ------
        AttributeError
            If the option has not been registered.
        """
        if option in {f.name for f in fields(self)}:
            return super().__setattr__(option, val)
        if option not in self._registered_options:
            raise AttributeError(f"{option} is not an available option for chunklengths.")
        self._registered_options[option].validate(val, self)
        self._config[option] = val

    def __getattr__(self, option: str) -> object:
        if option.startswith("__"):
            raise AttributeError(option)
        if option in self._config:
            return self._config[option]
        raise AttributeError(f"{option} not found.")

    def __dir__(self) -> Iterable[str]:
        return sorted((*[f.name for f in fields(self)], *self._config.keys()))

    def reset(self, option: Iterable[str] | str) -> None:
        """Reset option(s) to the registered default value(s)."""
        if isinstance(option, Iterable) and not isinstance(option, str):
            for opt in option:
                self.reset(opt)
        else:
            self._config[option] = self._registered_options[option].default_value

    @contextmanager
    def override(self, **overrides: Any):
        """Temporarily set options via keyword arguments.

        Yields
        ------
        None
        """
        restore = {a: getattr(self, a) for a in overrides}
        try:
            for k, v in overrides.items():
                setattr(self, k, v)
            yield None
        finally:
            for attr, value in restore.items():
                setattr(self, attr, value)

    def __repr__(self) -> str:
        params = "".join(f"\t{k}={v!r},\n" for k, v in self._config.items())
        return f"{type(self).__name__}(\n{params})"

    @property
    def __doc__(self) -> str:
        return _docstring.format(
            options_description=self.describe(should_print_description=False)
        )


settings = SettingsManager()

##################################################################################
# PLACE REGISTERED SETTINGS HERE SO THEY CAN BE PICKED UP FOR DOCSTRING CREATION #
##################################################################################


def gen_validator[V](_type: type[V] | tuple[type[V], ...], /) -> Callable[[V, SettingsManager], None]:
    """Generate a validator function for a given type."""

    def validate_type(val: V, settings: SettingsManager) -> None:
        # bool is an int subclass; reject it where a count is expected
        if not isinstance(val, _type) or (_type is int and isinstance(val, bool)):
            raise TypeError(f"{val!r} not valid {_type}")

    return validate_type


validate_bool = gen_validator(bool)
validate_int = gen_validator(int)


def validate_positive_int(val: int, settings: SettingsManager) -> None:
    """Validate that an integer is positive."""
    validate_int(val, settings)
    if val <= 0:
        raise ValueError(f"{val} must be positive")


def validate_chunk_size(val: int, settings: SettingsManager) -> None:
    """Validate chunk_size setting."""
    validate_positive_int(val, settings)
    if val > 1 << 30:
        warnings.warn(
            f"chunk_size ({val}) is very large and may cause memory issues", UserWarning
        )


def validate_optional_positive_int(val: int | None, settings: SettingsManager) -> None:
    if val is not None:
        validate_positive_int(val, settings)


settings.register(
    "chunk_size",
    default_value=32 * 1024 * 1024,
    description="Number of decompressed bytes read from a gzip matrix at a time",
    validate=validate_chunk_size,
    get_from_env=check_and_get_int,
)

settings.register(
    "line_buffer_size",
    default_value=1 << 20,
    description="Number of bytes read per step while reading a header line of unbounded length",
    validate=validate_positive_int,
    get_from_env=check_and_get_int,
)

settings.register(
    "row_capacity_hint",
    default_value=4_000_000,
    description="Upper bound of the initial row reservation when discovering the rows of a ragged matrix",
    validate=validate_positive_int,
    get_from_env=check_and_get_int,
)

settings.register(
    "max_workers",
    default_value=None,
    description="Maximum number of worker threads accumulating files in parallel. None means the CPU count. Set to 1 to disable parallelization.",
    validate=validate_optional_positive_int,
    option_type=int | None,
    get_from_env=check_and_get_optional_int,
)

settings.register(
    "log_parse_errors",
    default_value=True,
    description="Whether to log every non-numeric token found in a matrix (such tokens are always counted as 0)",
    validate=validate_bool,
    get_from_env=check_and_get_bool,
)

settings.register(
    "override_memory_check",
    default_value=False,
    description="If True, proceed when the matrices exceed 80% of available memory (logs a warning instead of raising AllocationError).",
    validate=validate_bool,
    get_from_env=check_and_get_bool,
)
