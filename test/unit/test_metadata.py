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
from unittest.mock import MagicMock, patch

import pytest
import requests

from guestnic.affinity import MetadataClient
from guestnic.constants import METADATA_HEADERS


def make_response(text="", json_data=None, status_code=200):
    response = MagicMock()
    response.text = text
    response.json.return_value = json_data
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


@pytest.fixture
def client(logger):
    return MetadataClient(
        url="http://metadata.test/computeMetadata/v1/", timeout=0.5, logger=logger
    )


def test_machine_type(client):
    with patch("guestnic.affinity.metadata.requests.get") as mock_get:
        mock_get.return_value = make_response(text="projects/123/machineTypes/a3-highgpu-8g")
        assert client.machine_type() == "a3-highgpu-8g"

    mock_get.assert_called_once_with(
        "http://metadata.test/computeMetadata/v1/instance/machine-type",
        headers=METADATA_HEADERS,
        params=None,
        timeout=0.5,
    )


def test_multinic_by_physical_nic_id(client):
    with patch("guestnic.affinity.metadata.requests.get") as mock_get:
        mock_get.return_value = make_response(
            json_data=[{"mac": "a", "physicalNicId": "0"}, {"mac": "b", "physicalNicId": "1"}]
        )
        assert client.is_multinic_accelerator_platform([])
    assert mock_get.call_count == 1
    assert mock_get.call_args.kwargs["params"] == {"recursive": "true"}


@pytest.mark.parametrize(
    "machine_type, expected",
    [
        ("projects/1/machineTypes/a3-megagpu-8g", True),
        ("projects/1/machineTypes/n2-standard-8", False),
    ],
)
def test_multinic_by_machine_type(client, machine_type, expected):
    with patch("guestnic.affinity.metadata.requests.get") as mock_get:
        mock_get.side_effect = [
            make_response(json_data=[{"mac": "a"}, {"mac": "b", "physicalNicId": "1"}]),
            make_response(text=machine_type),
        ]
        assert client.is_multinic_accelerator_platform(["a3-megagpu-8g"]) == expected


def test_metadata_errors_propagate(client):
    with patch("guestnic.affinity.metadata.requests.get") as mock_get:
        mock_get.return_value = make_response(status_code=404)
        with pytest.raises(requests.HTTPError):
            client.machine_type()

        mock_get.return_value = make_response(json_data={"not": "a list"})
        with pytest.raises(ValueError):
            client.network_interfaces()

        mock_get.side_effect = requests.ConnectionError("no route")
        with pytest.raises(requests.RequestException):
            client.is_multinic_accelerator_platform([])
