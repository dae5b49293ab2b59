"""
Pydantic models for tool argument schemas - single source of truth.

Tool definitions and argument validation both derive from these models.
If a field changes here, both the LLM-facing schema and the runtime
validation update automatically.

Usage:
  - FunctionTool.info calls `pydantic_to_parameters(args_model)` for the JSON schema
  - FunctionTool.call validates args with `args_model.model_validate(args)` before execution
"""

from typing import Optional

from pydantic import BaseModel, Field


class ReadFileArgs(BaseModel):
    """Arguments for read_file tool."""
    file_path: str = Field(description="Absolute path of the file to read")


class ReadDirectoryArgs(BaseModel):
    """Arguments for read_directory tool."""
    dir_path: str = Field(description="Absolute path of the directory to list")


class ReadStatArgs(BaseModel):
    """Arguments for read_stat tool."""
    path: str = Field(description="Absolute path of the file or directory")


class WriteFileArgs(BaseModel):
    """Arguments for write_file tool."""
    file_path: str = Field(description="Absolute path of the file to write")
    content: str = Field(description="Full text content to write")
    append: bool = Field(default=False, description="Append instead of overwriting")


class CreateDirectoryArgs(BaseModel):
    """Arguments for create_directory tool."""
    dir_path: str = Field(description="Absolute path of the directory to create (parents included)")


class DeleteFileArgs(BaseModel):
    """Arguments for delete_file tool."""
    file_path: str = Field(description="Absolute path of the file to delete")


class RemoveDirectoryArgs(BaseModel):
    """Arguments for remove_directory tool."""
    dir_path: str = Field(description="Absolute path of the directory to remove")
    recursive: bool = Field(default=False, description="Also remove everything inside it")


class ExecArgs(BaseModel):
    """Arguments for exec tool."""
    command: str = Field(description="Shell command or script to run")
    env: Optional[dict[str, str]] = Field(default=None, description="Extra environment variables")
    timeout: Optional[float] = Field(default=None, description="Timeout in seconds")


class WebFetchArgs(BaseModel):
    """Arguments for web_fetch tool."""
    url: str = Field(description="http(s) URL to fetch")


class WebSearchArgs(BaseModel):
    """Arguments for web_search tool."""
    query: str = Field(default="", description="Search keywords")


def pydantic_to_parameters(model: type[BaseModel]) -> dict:
    """
    Convert a Pydantic model to a function-calling `parameters` schema.

    Strips Pydantic-specific keys (like 'title') that aren't needed
    by the LLM tool definition format.
    """
    schema = model.model_json_schema()
    # Remove top-level 'title' - LLM doesn't need it
    schema.pop("title", None)
    # Ensure 'type' is 'object'
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    return schema
