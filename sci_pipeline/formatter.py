import typing

from .constants import (
    INPUT_PLACEHOLDER,
    OUTPUT_PLACEHOLDER,
    OUTPUT_STREAM_PLACEHOLDER,
    PARAM_PLACEHOLDER,
    PLACEHOLDER_PATTERN,
)
from .exceptions import ConfigurationError
from .utils import Placeholder, find_placeholders

if typing.TYPE_CHECKING:
    from .target import TargetProtocol

__all__ = ["format_command", "find_placeholders", "resolve_placeholder"]


def _missing(message: str, placeholder: Placeholder, pattern: str, code: str):
    return ConfigurationError(
        f"{message} '{placeholder.name}' for command '{pattern}'",
        code=code,
        params={
            "name": placeholder.name,
            "placeholder": placeholder.token,
            "command": pattern,
        },
    )


def resolve_placeholder(
    placeholder: Placeholder,
    pattern: str,
    in_targets: typing.Mapping[str, "TargetProtocol"],
    out_targets: typing.Mapping[str, "TargetProtocol"],
    params: typing.Mapping[str, str],
) -> str:
    """
    Resolve a single placeholder to the path or value it stands for.

    Args:
        placeholder: The placeholder to resolve.
        pattern: The command pattern the placeholder was found in, for error reporting.
        in_targets: Input targets keyed by port name.
        out_targets: Output targets keyed by port name.
        params: Parameter values keyed by name.
    Returns:
        The replacement string, never empty.
    Raises:
        ConfigurationError: If the port or parameter is missing, or resolves to an empty value.
    """
    value = ""
    if placeholder.kind in (OUTPUT_PLACEHOLDER, OUTPUT_STREAM_PLACEHOLDER):
        target = out_targets.get(placeholder.name)
        if target is None:
            raise _missing(
                "Missing outpath for outport", placeholder, pattern, "missing_output"
            )
        if placeholder.kind == OUTPUT_PLACEHOLDER:
            # written to the temporary path, atomized after execution
            value = target.temp_path
        else:
            value = target.fifo_path
    elif placeholder.kind == INPUT_PLACEHOLDER:
        target = in_targets.get(placeholder.name)
        if target is None:
            raise _missing(
                "Missing intarget for inport", placeholder, pattern, "missing_input"
            )
        if not target.path:
            raise _missing(
                "Missing inpath for inport", placeholder, pattern, "empty_input"
            )
        value = target.fifo_path if target.is_streaming else target.path
    elif placeholder.kind == PARAM_PLACEHOLDER:
        value = params.get(placeholder.name)
        if value is None or value == "":
            raise _missing(
                "Missing param value for param", placeholder, pattern, "missing_param"
            )
        value = str(value)

    if not value:
        raise _missing("Replace failed for port", placeholder, pattern, "empty_value")
    return value


def format_command(
    pattern: str,
    in_targets: typing.Optional[typing.Mapping[str, "TargetProtocol"]] = None,
    out_targets: typing.Optional[typing.Mapping[str, "TargetProtocol"]] = None,
    params: typing.Optional[typing.Mapping[str, str]] = None,
    prepend: str = "",
) -> str:
    """
    Turn a command pattern into a concrete shell command.

    Placeholders:
        {i:name}  path of input ``name``; its FIFO path if the input is streaming
        {o:name}  temporary path of output ``name``
        {os:name} FIFO path of output ``name``
        {p:name}  value of parameter ``name``

    Every occurrence of a placeholder is replaced. A non-empty ``prepend``
    is put in front of the command, separated by a single space.

    Example:
        >>> format_command("wc -l {i:in} > {o:out}", {"in": FileTarget("a.txt")},
        ...                {"out": FileTarget("a.cnt")})
        'wc -l a.txt > a.cnt.tmp'
    """
    in_targets = in_targets or {}
    out_targets = out_targets or {}
    params = params or {}

    values = {
        placeholder.token: resolve_placeholder(
            placeholder, pattern, in_targets, out_targets, params
        )
        for placeholder in find_placeholders(pattern)
    }
    # single pass, so substituted values are never scanned for placeholders
    command = PLACEHOLDER_PATTERN.sub(lambda match: values[match.group(0)], pattern)

    if prepend:
        command = f"{prepend} {command}"
    return command
