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
import logging
from typing import Optional

from guestnic.connection.inband import CommandArtifact, FileArtifact, InBandConnection
from guestnic.enums import SystemInteractionLevel
from guestnic.models import GuestNicConfig

from .task import Task


class InBandTask(Task):
    """Task that reads and changes system state through an in band connection"""

    def __init__(
        self,
        connection: InBandConnection,
        config: Optional[GuestNicConfig] = None,
        logger: Optional[logging.Logger] = None,
        system_interaction_level: SystemInteractionLevel | str = SystemInteractionLevel.DISRUPTIVE,
        run_tag: Optional[str] = None,
    ):
        super().__init__(
            logger=logger,
            system_interaction_level=system_interaction_level,
            run_tag=run_tag,
        )
        self.connection = connection
        self.config = config if config is not None else GuestNicConfig()

    def _run_sut_cmd(
        self,
        command: str,
        sudo: bool = False,
        timeout: int = 300,
        strip: bool = True,
        log_artifact: bool = True,
    ) -> CommandArtifact:
        command_res = self.connection.run_command(
            command=command, sudo=sudo, timeout=timeout, strip=strip
        )
        if log_artifact:
            self.result.artifacts.append(command_res)

        return command_res

    def _read_sut_file(
        self, filename: str, encoding: str = "utf-8", strip: bool = True
    ) -> FileArtifact:
        return self.connection.read_file(filename=filename, encoding=encoding, strip=strip)

    def _write_sut_file(self, filename: str, contents: str) -> None:
        self.logger.debug("Writing %s to %s", contents, filename)
        self.connection.write_file(filename, contents)
