import io

import pytest

from build_tracer.graph import ScanSession, TargetGraphBuilder


class Scan:
    def __init__(self, root_cwd, sandbox_root):
        self.commands     = io.StringIO()
        self.sources      = io.StringIO()
        self.dependencies = io.StringIO()
        self.build_script = io.StringIO()
        self.session = ScanSession.for_streams(
            root_cwd, sandbox_root,
            self.commands, self.sources, self.dependencies, self.build_script
        )
        self.builder = TargetGraphBuilder(self.session)

    def run(self, lines):
        self.builder.scan(lines)
        return self

    @property
    def targets(self):
        return self.builder.targets


@pytest.fixture
def make_scan(tmp_path):
    def make(root_cwd='/proj', sandbox_root=None):
        return Scan(root_cwd, sandbox_root if sandbox_root is not None else tmp_path / 'sandbox')
    return make


def execve(pid, program, args, ret='0'):
    argv = ', '.join('"{}"'.format(a) for a in args)
    return '{}  execve("{}", [{}], 0x7ffd8a1c2e40 /* 24 vars */) = {}'.format(pid, program, argv, ret)


def openat(pid, path, flags='O_RDONLY|O_NOCTTY', ret='3'):
    return '{}  openat(AT_FDCWD, "{}", {}) = {}'.format(pid, path, flags, ret)
