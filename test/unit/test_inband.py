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
import pytest

from guestnic.connection.inband import LocalShell


@pytest.fixture
def shell():
    return LocalShell()


def test_run_command(shell):
    res = shell.run_command("echo ' guest nic '")
    assert res.exit_code == 0
    assert res.stdout == "guest nic"

    res = shell.run_command("exit 3")
    assert res.exit_code == 3


def test_file_access(shell, tmp_path):
    target = tmp_path / "smp_affinity"
    shell.write_file(str(target), "00000f00")
    assert target.read_text() == "00000f00"

    artifact = shell.read_file(str(target))
    assert artifact.filename == "smp_affinity"
    assert artifact.contents == "00000f00"

    with pytest.raises(FileNotFoundError):
        shell.read_file(str(tmp_path / "missing"))


def test_directory_helpers(shell, tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "vendor").write_text("0x15b3")
    (tmp_path / "a" / "c").mkdir()
    (tmp_path / "a" / "c" / "vendor").write_text("0x10de")
    (tmp_path / "link").symlink_to(tmp_path / "a")

    assert shell.list_dir(str(tmp_path)) == ["a", "b", "link"]
    assert shell.list_dir(str(tmp_path / "missing")) == []
    assert shell.is_dir(str(tmp_path / "link"))
    assert shell.path_exists(str(tmp_path / "a" / "vendor"))
    assert shell.realpath(str(tmp_path / "link")) == str((tmp_path / "a").resolve())
    assert shell.find_dirs_with_file(str(tmp_path), "vendor") == [
        str(tmp_path / "a"),
        str(tmp_path / "a" / "c"),
    ]
