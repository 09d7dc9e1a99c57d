import pytest

from edgemq.cli import App, main, register_app, run


class Recorder:
    def __init__(self, result=0):
        self.calls = []
        self.result = result

    def __call__(self, args):
        self.calls.append(list(args))
        return self.result


def make_app(name="broker", **commands):
    return App(name=name, **commands)


def test_version_flag(capsys):
    assert run(["edgemq", "-v"], []) == 0
    assert "v.01-3" in capsys.readouterr().out


def test_version_flag_any_suffix(capsys):
    assert run(["edgemq", "-version"], []) == 0
    assert "v.01-3" in capsys.readouterr().out


def test_no_arguments_lists_apps(capsys):
    apps = [make_app("broker"), make_app("client")]
    assert run(["/usr/bin/edgemq"], apps) == 1
    out = capsys.readouterr().out
    assert "available applications:" in out
    assert "   * broker" in out and "   * client" in out


def test_start_stop_restart_dispatch():
    start, stop, restart = Recorder(3), Recorder(4), Recorder(5)
    apps = [make_app(start=start, stop=stop, restart=restart)]
    assert run(["edgemq", "broker", "start", "--conf", "x"], apps) == 3
    assert run(["edgemq", "broker", "stop"], apps) == 4
    assert run(["edgemq", "broker", "restart", "a"], apps) == 5
    assert start.calls == [["--conf", "x"]]
    assert stop.calls == [[]]
    assert restart.calls == [["a"]]


def test_invoked_by_app_name():
    stop = Recorder(0)
    apps = [make_app("broker", stop=stop)]
    assert run(["/opt/bin/broker", "stop", "now"], apps) == 0
    assert stop.calls == [["now"]]


def test_default_without_arguments():
    dflt = Recorder(2)
    assert run(["edgemq", "broker"], [make_app(dflt=dflt)]) == 2
    assert dflt.calls == [[]]


def test_default_receives_unknown_action():
    dflt, start = Recorder(0), Recorder(9)
    apps = [make_app(dflt=dflt, start=start)]
    assert run(["edgemq", "broker", "status", "-x"], apps) == 0
    assert dflt.calls == [["status", "-x"]]
    assert start.calls == []


def test_start_without_handler_goes_to_default():
    dflt = Recorder(0)
    assert run(["edgemq", "broker", "start"], [make_app(dflt=dflt)]) == 0
    assert dflt.calls == [["start"]]


def test_not_enough_arguments(capsys):
    apps = [make_app(start=Recorder(), stop=Recorder())]
    assert run(["edgemq", "broker"], apps) == 1
    out = capsys.readouterr().out
    assert "not enough arguments to run broker" in out
    assert "   * start" in out and "   * stop" in out


def test_unknown_parameter(capsys):
    apps = [make_app(start=Recorder())]
    assert run(["edgemq", "broker", "bogus"], apps) == 1
    out = capsys.readouterr().out
    assert "unknown parameter: bogus" in out
    assert "   * stop" not in out


def test_unknown_app(capsys):
    apps = [make_app("broker"), make_app("client")]
    assert run(["edgemq", "nope"], apps) == 1
    out = capsys.readouterr().out
    assert "the app 'nope' was not found" in out
    assert "[--help]" in out and " broker " in out and " client " in out


def test_none_result_is_success():
    assert run(["edgemq", "broker"], [make_app(dflt=lambda args: None)]) == 0


def test_app_name_length_limit():
    with pytest.raises(ValueError):
        App(name="x" * 25)
    with pytest.raises(ValueError):
        App(name="")


def test_register_and_main():
    dflt = Recorder(6)
    app = register_app(App(name="registered_app_test", dflt=dflt))
    assert app.name == "registered_app_test"
    assert main(["edgemq", "registered_app_test", "go"]) == 6
    assert dflt.calls == [["go"]]