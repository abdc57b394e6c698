"""
System step handlers: files, processes, environment, data formats.

databaseQuery, sendEmail, readEmail and cloudStorage need drivers this
build does not ship and raise UnsupportedOperation.
"""

from pathlib import Path
from typing import Any, Dict
import asyncio
import json
import logging
import os
import shutil

import yaml

from stepflow.engine.handlers import handles
from stepflow.exceptions import StepError, TimeoutFailure, UnsupportedOperation, ValidationFailure

logger = logging.getLogger(__name__)


@handles("fileSystem")
async def file_system(executor, step, ctx) -> Any:
    """
    File operations.

    read returns the file's text, exists returns ``{exists, path}``, the
    others return ``{success, path}``.
    """
    source = Path(step.source_path).expanduser()
    operation = step.operation

    if operation == "exists":
        return {"exists": source.exists(), "path": str(source)}

    if operation == "write":
        if step.content is None:
            raise ValidationFailure("Content is required for write")
        source.parent.mkdir(parents=True, exist_ok=True)
        source.write_text(step.content, encoding=step.encoding)
        return {"success": True, "path": str(source)}

    if not source.exists():
        raise StepError(f"File not found: {source}", details={"path": str(source)})

    if operation == "read":
        return source.read_text(encoding=step.encoding)

    if operation == "delete":
        if source.is_dir():
            shutil.rmtree(source)
        else:
            source.unlink()
        return {"success": True, "path": str(source)}

    if not step.destination_path:
        raise ValidationFailure(f"Destination path is required for {operation}")
    destination = Path(step.destination_path).expanduser()
    destination.parent.mkdir(parents=True, exist_ok=True)

    if operation == "copy":
        if source.is_dir():
            shutil.copytree(source, destination)
        else:
            shutil.copy2(source, destination)
    else:
        shutil.move(str(source), str(destination))
    return {"success": True, "path": str(destination)}


@handles("systemCommand")
async def system_command(executor, step, ctx) -> Dict[str, Any]:
    """
    Run a program without a shell.

    A non-zero exit code is reported in the result, not raised.
    """
    if not step.command.strip():
        raise ValidationFailure("Command is required")

    process = await asyncio.create_subprocess_exec(
        step.command,
        *step.args,
        cwd=step.working_directory or None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=step.timeout_ms / 1000)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise TimeoutFailure(f"Command timed out after {step.timeout_ms}ms: {step.command}", timeout_ms=step.timeout_ms)

    logger.debug(f"Command {step.command} exited with {process.returncode}")
    return {
        "stdout": stdout.decode("utf-8", errors="replace"),
        "stderr": stderr.decode("utf-8", errors="replace"),
        "exitCode": process.returncode,
    }


@handles("environmentVariable")
async def environment_variable(executor, step, ctx) -> str:
    if step.operation == "get":
        return os.environ.get(step.variable_name, "")
    if step.value is None:
        raise ValidationFailure("Value is required for set")
    os.environ[step.variable_name] = step.value
    return step.value


@handles("dataTransform")
async def data_transform(executor, step, ctx) -> Any:
    """
    Parse JSON/YAML text into data, or render data as JSON/YAML text.

    For stringify the input is itself parsed first (as JSON, or YAML when
    ``input_format`` is yaml).
    """
    try:
        if step.input_format == "yaml":
            data = yaml.safe_load(step.input)
        else:
            data = json.loads(step.input)
    except (ValueError, yaml.YAMLError) as e:
        raise ValidationFailure(f"Invalid {step.input_format.upper()} input: {e}")

    if step.operation == "parse":
        return data
    if step.output_format == "yaml":
        return yaml.safe_dump(data, sort_keys=False)
    return json.dumps(data, indent=2)


@handles("databaseQuery", "sendEmail", "readEmail", "cloudStorage")
async def unavailable(executor, step, ctx) -> None:
    raise UnsupportedOperation(
        f"{step.type} requires additional dependencies that are not installed",
        step_type=step.type,
    )
