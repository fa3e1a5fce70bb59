###############################################################################
#
# MIT License
#
# Copyright (c) 2025 Advanced Micro Devices, Inc.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
###############################################################################
import argparse
import json
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

TModelType = TypeVar("TModelType", bound=BaseModel)


def json_arg(json_path: str) -> dict:
    """Load a json file given on the command line

    Args:
        json_path (str): path to json file

    Raises:
        argparse.ArgumentTypeError: if the file can not be read or decoded

    Returns:
        dict: file contents
    """
    try:
        with open(json_path, "r", encoding="utf-8") as input_file:
            return json.load(input_file)
    except (OSError, json.JSONDecodeError) as e:
        raise argparse.ArgumentTypeError(f"Invalid json input: {json_path}, {e}") from e


def log_path_arg(log_path: str) -> Optional[str]:
    if log_path.lower() == "none":
        return None
    return log_path


class ModelArgHandler(Generic[TModelType]):
    """Build a pydantic model from a json file argument"""

    def __init__(self, model: type[TModelType]) -> None:
        self.model = model

    def process_file_arg(self, file_path: str) -> TModelType:
        data = json_arg(file_path)
        try:
            return self.model(**data)
        except ValidationError as e:
            raise argparse.ArgumentTypeError(
                f"Validation errors when processing {file_path}: {e.errors(include_url=False)}"
            ) from e
