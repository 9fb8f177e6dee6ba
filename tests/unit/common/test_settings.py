import dataclasses
from unittest.mock import AsyncMock, patch

import pytest
from brupop_apiserver.common.settings import assemble_settings, parse_port, read_internal_port
from brupop_apiserver.core.startup_errors import MissingEnvVariableError, ParsePortError
from brupop_apiserver.infra.node_client import K8SBottlerocketShadowClient


def test_assemble_settings():
    api_client = AsyncMock()

    settings = assemble_settings(
        api_client, "brupop-bottlerocket-aws", environ={"APISERVER_INTERNAL_PORT": "8080"}
    )

    assert settings.server_port == 8080
    assert settings.namespace == "brupop-bottlerocket-aws"
    assert isinstance(settings.node_client, K8SBottlerocketShadowClient)
    assert settings.node_client.api_client is api_client
    assert settings.node_client.namespace == "brupop-bottlerocket-aws"


def test_settings_are_immutable():
    settings = assemble_settings(AsyncMock(), "ns", environ={"APISERVER_INTERNAL_PORT": "8080"})

    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.server_port = 9090  # type: ignore


def test_missing_port():
    with patch("brupop_apiserver.common.settings.K8SBottlerocketShadowClient") as node_client:
        with pytest.raises(MissingEnvVariableError) as exc_info:
            assemble_settings(AsyncMock(), "ns", environ={})

    assert exc_info.value.variable == "APISERVER_INTERNAL_PORT"
    assert "'APISERVER_INTERNAL_PORT'" in exc_info.value.describe()
    node_client.assert_not_called()


@pytest.mark.parametrize(
    "value",
    [
        "not-a-number",
        "",
        "80.5",
        "0",
        "-1",
        "65536",
        "2147483648",
        "8_080",
        "\u0668\u0660\u0668\u0660",
        "\uff18\uff10\uff18\uff10",
        "0x1f90",
        "+",
    ],
)
def test_invalid_port(value):
    with pytest.raises(ParsePortError):
        read_internal_port({"APISERVER_INTERNAL_PORT": value})


@pytest.mark.parametrize(
    "value,expected",
    [("1", 1), ("8443", 8443), (" 8080 ", 8080), ("65535", 65535), ("+8080", 8080), ("08080", 8080)],
)
def test_parse_port(value, expected):
    assert parse_port(value) == expected
