"""Process configuration (config.json) loader."""
import json
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from ..errors import FormatError
from ..models.process_config import ConfigFile


def load_config(source: Union[str, Path, dict]) -> ConfigFile:
    """Load and validate a process configuration file or dict."""
    if isinstance(source, dict):
        data = source
    else:
        try:
            data = json.loads(Path(source).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid JSON in config file {source}: {e}") from e
    try:
        return ConfigFile.model_validate(data)
    except ValidationError as e:
        raise FormatError(f"Invalid process configuration: {e}") from e
