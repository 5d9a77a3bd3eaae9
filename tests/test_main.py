import logging
import os

import pytest

import build_tracer.main

from build_tracer.config import Config, Stages
from build_tracer.log    import getLog
from build_tracer.main   import MakeTracer
from build_tracer.timer  import Timer
from build_tracer.tracer import make_trace_command

from conftest import execve, openat


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    log = getLog()
    for handler in list(log.handlers):
        log.removeHandler(handler)
    log.setLevel(logging.NOTSET)


@pytest.fixture
def project(tmp_path, monkeypatch):
    proj = tmp_path / 'proj'
    proj.mkdir()
    (proj / 'hello.c').write_text('#include "hello.h"\nint main(void) { return 0; }\n')
    (proj / 'hello.h').write_text('#define HELLO 1\n')
    monkeypatch.chdir(proj)
    return proj


def environ(out, stage):
    return {
        'BUILD_TRACER_OUTPUT_DIR': str(out),
        'BUILD_TRACER_STAGE'     : stage,
    }


def write_trace(path):
    path.write_text('\n'.join([
        execve(100, '/usr/bin/make', ['make']),
        '100 vfork( <unfinished ...>',
        execve(101, '/usr/bin/gcc', ['gcc', '-o', 'hello', 'hello.c']),
        '100 <... vfork resumed>) = 101',
        openat(101, '/etc/ld.so.cache', 'O_RDONLY|O_CLOEXEC'),
        openat(101, 'hello.h'),
        openat(101, 'hello', 'O_RDWR|O_CREAT|O_TRUNC'),
        '101 +++ exited with 0 +++',
        '100 +++ exited with 0 +++',
    ]) + '\n')


def test_stages():
    assert Stages('all').trace and Stages('all').parse
    s = Stages('parse')
    assert s.parse and not s.trace
    s = Stages('trace, parse')
    assert s.trace and s.parse


def test_config_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = Config({})
    assert cfg.output_dir == tmp_path
    assert cfg.strace_command == '/usr/bin/strace'
    assert cfg.make_command == 'make'
    assert cfg.trace_file == tmp_path / 't.out'
    assert cfg.commands_file == tmp_path / 'commands_cache.txt'
    assert cfg.sources_file == tmp_path / 'source_files.txt'
    assert cfg.dependency_file == tmp_path / 'dependency.txt'
    assert cfg.sandbox_dir == tmp_path / 'sandbox'
    assert cfg.log_level == 'INFO'


def test_config_from_environment(tmp_path):
    cfg = Config({
        'BUILD_TRACER_OUTPUT_DIR'    : str(tmp_path / 'out'),
        'BUILD_TRACER_STRACE_COMMAND': '/opt/bin/strace',
        'BUILD_TRACER_MAKE_COMMAND'  : 'gmake',
        'BUILD_TRACER_TRACE_FILE'    : 'build.strace',
        'BUILD_TRACER_LOG_LEVEL'     : 'debug',
    })
    assert cfg.output_dir == tmp_path / 'out'
    assert cfg.strace_command == '/opt/bin/strace'
    assert cfg.make_command == 'gmake'
    assert cfg.trace_file == tmp_path / 'out' / 'build.strace'
    assert cfg.log_level == 'DEBUG'


def test_make_trace_command(tmp_path):
    cmd = make_trace_command('/usr/bin/strace', tmp_path / 't.out', 'make', ['-j1', 'all'])
    assert cmd[:4] == ['/usr/bin/strace', '-f', '-o', str(tmp_path / 't.out')]
    assert cmd[-3:] == ['make', '-j1', 'all']
    trace_set = cmd[cmd.index('-e') + 1]
    for call in ('execve', 'chdir', 'openat', 'vfork'):
        assert call in trace_set.split('=')[1].split(',')
    assert any(a.startswith('--string-limit=') for a in cmd)


def test_timer():
    ticks = iter([0.0, 1.0, 3.5])
    timer = Timer(clock=lambda: next(ticks))
    timer.cut('trace')
    timer.cut('parse')
    rows = timer.get_summary_pretty()
    assert any(r.startswith('trace') and r.endswith('1.000s') for r in rows)
    assert any(r.startswith('parse') and r.endswith('2.500s') for r in rows)
    assert rows[-1].startswith('TOTAL') and rows[-1].endswith('3.500s')


def test_parse_only(project, tmp_path, capsys):
    out = tmp_path / 'out'
    out.mkdir()
    write_trace(out / 't.out')

    app = MakeTracer([], environ(out, 'parse'))
    assert app.main() == 0
    assert app.returncode is None

    assert (out / 'commands_cache.txt').read_text() == 'gcc -o hello hello.c\n'
    assert (out / 'source_files.txt').read_text() == '{}\n'.format(project / 'hello.c')
    assert (out / 'dependency.txt').read_text() == (
        "TARGET:  hello\n"
        "COMMAND:  gcc -o hello hello.c\n"
        "DEPENDENCY:  {}  {}\n".format(project / 'hello.c', project / 'hello.h')
    )

    sandbox = out / 'sandbox'
    mirrored = sandbox / project.relative_to('/')
    assert (mirrored / 'hello.h').read_text() == '#define HELLO 1\n'
    makefile = (sandbox / 'Makefile').read_text()
    assert 'hello: {}\n\tgcc -I{} -o hello hello.c\n'.format(project / 'hello.c', sandbox) in makefile
    assert makefile.endswith('.PHONY: all\nall: hello\n')

    stdout = capsys.readouterr().out
    assert 'PARSE-START' in stdout
    assert 'targets: 1' in stdout
    assert 'TRACE-START' not in stdout


def test_failed_build_is_still_parsed(project, tmp_path, monkeypatch, caplog):
    out = tmp_path / 'out'
    calls = []

    def fake_run_traced(run_command, cwd=None):
        calls.append(run_command)
        write_trace(out / 't.out')
        return 2

    monkeypatch.setattr(build_tracer.main, 'run_traced', fake_run_traced)

    app = MakeTracer(['all'], environ(out, 'all'))
    assert app.main() == 0
    assert app.returncode == 2
    assert calls[0][-2:] == ['make', 'all']
    assert 'exited with code 2' in caplog.text
    assert [t.name for t in app.builder.targets] == ['hello']


def test_unopenable_output_is_fatal(project, tmp_path, caplog):
    out = tmp_path / 'out'
    out.mkdir()
    write_trace(out / 't.out')
    (out / 'commands_cache.txt').mkdir()

    app = MakeTracer([], environ(out, 'parse'))
    assert app.main() == 1
    assert 'commands_cache.txt' in caplog.text
    assert not (out / 'dependency.txt').exists()


def test_missing_trace_is_fatal(project, tmp_path, caplog):
    out = tmp_path / 'out'
    out.mkdir()

    app = MakeTracer([], environ(out, 'parse'))
    assert app.main() == 1
    assert 't.out' in caplog.text
    assert os.listdir(out) == []
