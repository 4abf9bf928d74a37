import io
import json

import pytest

from nrikit.skel import Plugin, run

REQUEST = json.dumps({"version": "0.1", "state": "create", "id": "c1", "spec": {}})


class EchoPlugin(Plugin):
    def type(self):
        return "echo"

    def invoke(self, request):
        result = request.new_result(self.type())
        result.metadata["id"] = request.id
        return result


class FailingPlugin(Plugin):
    def type(self):
        return "failing"

    def invoke(self, request):
        raise RuntimeError("boom")


def _run(plugin, argv, text=REQUEST):
    out = io.StringIO()
    run(plugin, argv=argv, stdin=io.StringIO(text), stdout=out)
    return out.getvalue()


def test_invoke_writes_plugin_result():
    output = _run(EchoPlugin(), ["invoke"])
    assert json.loads(output) == {
        "plugin": "echo",
        "version": "0.1",
        "error": "",
        "metadata": {"id": "c1"},
    }


def test_output_is_one_line():
    output = _run(EchoPlugin(), ["invoke"])
    assert output.endswith("\n")
    assert output.count("\n") == 1


def test_failure_is_reported_in_result():
    result = json.loads(_run(FailingPlugin(), ["invoke"]))
    assert result["error"] == "boom"
    assert result["plugin"] == "failing"
    assert result["version"] == "0.1"


def test_unknown_command_reports_invalid_arg():
    result = json.loads(_run(EchoPlugin(), ["bogus"]))
    assert result["error"] == "invalid arg bogus"
    assert result["plugin"] == "echo"


def test_bad_request_raises():
    with pytest.raises(ValueError):
        _run(EchoPlugin(), ["invoke"], text="{not json")


def test_missing_command_raises():
    with pytest.raises(ValueError):
        _run(EchoPlugin(), [])


def test_plugin_is_abstract():
    with pytest.raises(TypeError):
        Plugin()