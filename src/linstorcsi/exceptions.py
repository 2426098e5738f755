"""Exceptions for the LINSTOR volume translation layer."""

from __future__ import annotations

from typing import override

from safir.slack.blockkit import (
    SlackCodeBlock,
    SlackException,
    SlackMessage,
    SlackTextBlock,
    SlackTextField,
    SlackWebException,
)
from safir.slack.sentry import SentryEventInfo

__all__ = [
    "CapacityError",
    "CodecError",
    "FilesystemError",
    "LinstorApiError",
    "ParameterError",
    "ResourceNameError",
]


class CapacityError(SlackException):
    """The requested size cannot be satisfied within the size limit.

    Parameters
    ----------
    message
        Summary of error.
    required_bytes
        Number of bytes the caller asked for.
    limit_bytes
        Upper bound on the volume size in bytes, or 0 if unlimited.
    allocated_kib
        Size in KiB that would have been allocated, if one was computed.
    """

    def __init__(
        self,
        message: str,
        *,
        required_bytes: int,
        limit_bytes: int,
        allocated_kib: int | None = None,
    ) -> None:
        super().__init__(message)
        self.required_bytes = required_bytes
        self.limit_bytes = limit_bytes
        self.allocated_kib = allocated_kib

    @override
    def to_slack(self) -> SlackMessage:
        """Convert to a Slack message for Slack alerting.

        Returns
        -------
        safir.slack.blockkit.SlackMessage
            Slack message suitable for posting as an alert.
        """
        message = super().to_slack()
        required = str(self.required_bytes)
        limit = str(self.limit_bytes) if self.limit_bytes else "unlimited"
        field = SlackTextField(heading="Required", text=required)
        message.fields.append(field)
        message.fields.append(SlackTextField(heading="Limit", text=limit))
        if self.allocated_kib is not None:
            allocated = f"{self.allocated_kib} KiB"
            field = SlackTextField(heading="Allocation", text=allocated)
            message.fields.append(field)
        return message

    @override
    def to_sentry(self) -> SentryEventInfo:
        """Return a collection of Sentry event metadata about the exception.

        Returns
        -------
        safir.slack.sentry.SentryEventInfo
            Sentry event metadata for use with \
            `~safir.sentry.before_send_handler`
        """
        info = super().to_sentry()
        context = info.contexts.setdefault("capacity", {})
        context["required_bytes"] = self.required_bytes
        context["limit_bytes"] = self.limit_bytes
        if self.allocated_kib is not None:
            context["allocated_kib"] = self.allocated_kib
        return info


class CodecError(SlackException):
    """A volume annotation was present but could not be decoded.

    Parameters
    ----------
    message
        Summary of error.
    resource
        Name of the LINSTOR resource definition holding the annotation, if
        known.
    annotation
        Raw annotation value, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        annotation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.annotation = annotation

    @override
    def __str__(self) -> str:
        if self.resource:
            return f"{self.message} (resource {self.resource})"
        return self.message

    @override
    def to_slack(self) -> SlackMessage:
        """Convert to a Slack message for Slack alerting.

        Returns
        -------
        safir.slack.blockkit.SlackMessage
            Slack message suitable for posting as an alert.
        """
        message = super().to_slack()
        message.message = self.message
        if self.resource:
            block = SlackTextBlock(heading="Resource", text=self.resource)
            message.blocks.append(block)
        if self.annotation:
            code = SlackCodeBlock(heading="Annotation", code=self.annotation)
            message.blocks.append(code)
        return message

    @override
    def to_sentry(self) -> SentryEventInfo:
        """Return a collection of Sentry event metadata about the exception.

        Returns
        -------
        safir.slack.sentry.SentryEventInfo
            Sentry event metadata for use with \
            `~safir.sentry.before_send_handler`
        """
        info = super().to_sentry()
        if self.resource:
            info.tags["resource"] = self.resource
        if self.annotation:
            info.attachments["annotation"] = self.annotation
        return info


class FilesystemError(SlackException):
    """A local filesystem command failed.

    Parameters
    ----------
    message
        Summary of error.
    command
        Command that was run, as a list of arguments.
    returncode
        Exit status of the command.
    stderr
        Standard error from the command, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        command: list[str],
        returncode: int | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.command = command
        self.returncode = returncode
        self.stderr = stderr

    @override
    def __str__(self) -> str:
        result = f"{self.message} ({' '.join(self.command)}"
        if self.returncode is not None:
            result += f", status {self.returncode}"
        result += ")"
        if self.stderr:
            result += f": {self.stderr}"
        return result

    @override
    def to_slack(self) -> SlackMessage:
        """Convert to a Slack message for Slack alerting.

        Returns
        -------
        safir.slack.blockkit.SlackMessage
            Slack message suitable for posting as an alert.
        """
        message = super().to_slack()
        message.message = self.message
        command = " ".join(self.command)
        message.blocks.append(SlackCodeBlock(heading="Command", code=command))
        if self.returncode is not None:
            status = str(self.returncode)
            field = SlackTextField(heading="Status", text=status)
            message.fields.append(field)
        if self.stderr:
            code = SlackCodeBlock(heading="Error", code=self.stderr)
            message.blocks.append(code)
        return message


class LinstorApiError(SlackWebException):
    """An API call to the LINSTOR controller failed."""


class ParameterError(SlackException):
    """A volume parameter has a value that cannot be parsed.

    Parameters
    ----------
    key
        Parameter key.
    value
        Value that could not be parsed.
    expected
        Description of what was expected.
    """

    def __init__(self, key: str, value: str, expected: str) -> None:
        msg = f'Invalid value "{value}" for parameter {key}: {expected}'
        super().__init__(msg)
        self.key = key
        self.value = value


class ResourceNameError(SlackException):
    """No legal LINSTOR resource name could be derived.

    Parameters
    ----------
    name
        Offending name.
    reason
        Which rule the name violated.
    """

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f'Invalid resource name "{name}": {reason}')
        self.name = name
        self.reason = reason
