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
import os
import subprocess

from .inband import CommandArtifact, FileArtifact, InBandConnection


class LocalShell(InBandConnection):

    def run_command(
        self, command: str, sudo: bool = False, timeout: int = 300, strip: bool = True
    ) -> CommandArtifact:
        """Run a local in band shell command

        Args:
            command (str): command to run
            sudo (bool, optional): run command with sudo. Defaults to False.
            timeout (int, optional): timeout for command in seconds. Defaults to 300.
            strip (bool, optional): strip output of command. Defaults to True.

        Returns:
            CommandArtifact: command result object
        """
        if sudo:
            command = f"sudo {command}"

        res = subprocess.run(
            command,
            encoding="utf-8",
            shell=True,
            timeout=timeout,
            capture_output=True,
            check=False,
        )

        return CommandArtifact(
            command=command,
            stdout=res.stdout.strip() if strip else res.stdout,
            stderr=res.stderr.strip() if strip else res.stderr,
            exit_code=res.returncode,
        )

    def read_file(self, filename: str, encoding: str = "utf-8", strip: bool = True) -> FileArtifact:
        """Read a local file into a FileArtifact

        Args:
            filename (str): filename
            encoding (str, optional): encoding to use when opening file. Defaults to "utf-8".
            strip (bool): automatically strip file contents

        Returns:
            FileArtifact: file artifact
        """
        with open(filename, "r", encoding=encoding) as local_file:
            contents = local_file.read()

        return FileArtifact(
            filename=os.path.basename(filename),
            contents=contents.strip() if strip else contents,
        )

    def write_file(self, filename: str, contents: str, encoding: str = "utf-8") -> None:
        # sysfs and procfs control files expect the whole value in one write
        with open(filename, "w", encoding=encoding) as local_file:
            local_file.write(contents)

    def list_dir(self, path: str) -> list[str]:
        if not os.path.isdir(path):
            return []
        return sorted(os.listdir(path))

    def path_exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def realpath(self, path: str) -> str:
        return os.path.realpath(path)

    def find_dirs_with_file(self, root: str, filename: str) -> list[str]:
        matches = []
        for dirpath, _dirnames, filenames in os.walk(root, followlinks=False):
            if filename in filenames:
                matches.append(dirpath)
        return sorted(matches)
