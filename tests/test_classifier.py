from build_tracer.classifier     import (LineClassifier, InvocationStart, DirChange, FileOpen,
                                         VforkUnfinished, VforkResumed, ProcessSpawn, ProcessExit,
                                         decode_xstr, is_header)
from build_tracer.process_state  import ProcessStateTracker

from conftest import execve, openat


def make_classifier(root_cwd='/proj'):
    tracker = ProcessStateTracker(root_cwd)
    return LineClassifier(tracker), tracker


def test_execve_is_invocation_start():
    classifier, _ = make_classifier()
    event = classifier.classify(execve(101, '/usr/bin/gcc', ['gcc', '-o', 'a', 'a.c']))
    assert isinstance(event, InvocationStart)
    assert event.pid == 101
    assert event.raw_args.startswith('/usr/bin/gcc", ["gcc", "-o", "a", "a.c"]')


def test_failed_execve_is_discarded():
    classifier, _ = make_classifier()
    line = execve(101, '/usr/local/bin/gcc', ['gcc', '-c', 'a.c'], ret='-1 ENOENT (No such file or directory)')
    assert classifier.classify(line) is None


def test_pid_in_brackets():
    classifier, _ = make_classifier()
    event = classifier.classify('[pid  4242] execve("/usr/bin/g++", ["g++", "-o", "x", "x.cc"], 0x1 /* 3 vars */) = 0')
    assert isinstance(event, InvocationStart)
    assert event.pid == 4242


def test_openat_of_header_by_unwatched_pid():
    classifier, _ = make_classifier()
    event = classifier.classify(openat(200, '/usr/include/stdio.h'))
    assert event == FileOpen(200, '/usr/include/stdio.h', None, 'O_RDONLY|O_NOCTTY')


def test_openat_of_other_file_needs_watched_pid():
    classifier, tracker = make_classifier()
    line = openat(200, 'main.c')
    assert classifier.classify(line) is None
    tracker.mark_watched(200)
    assert isinstance(classifier.classify(line), FileOpen)


def test_failed_openat_is_discarded():
    classifier, tracker = make_classifier()
    tracker.mark_watched(200)
    assert classifier.classify(openat(200, 'missing.h', ret='-1 ENOENT (No such file or directory)')) is None
    assert classifier.classify(openat(200, 'secret.h', ret='-1 EACCES (Permission denied)')) is None


def test_openat_with_decoded_dirfd():
    classifier, _ = make_classifier()
    event = classifier.classify('300 openat(AT_FDCWD</proj/src>, "util.h", O_RDONLY|O_NOCTTY) = 3</proj/src/util.h>')
    assert event.raw_path == 'util.h'
    assert event.dir_path == '/proj/src'


def test_openat_escaped_path():
    classifier, _ = make_classifier()
    event = classifier.classify(r'300 openat(AT_FDCWD, "dir\x20name/a.h", O_RDONLY) = 3')
    assert event.raw_path == 'dir name/a.h'


def test_chdir():
    classifier, _ = make_classifier()
    assert classifier.classify('100 chdir("/proj/src") = 0') == DirChange(100, '/proj/src')
    assert classifier.classify('100 chdir("/nowhere") = -1 ENOENT (No such file or directory)') is None


def test_fchdir_with_decoded_descriptor():
    classifier, _ = make_classifier()
    assert classifier.classify('100 fchdir(3</proj/lib>) = 0') == DirChange(100, '/proj/lib')
    assert classifier.classify('100 fchdir(3) = 0') is None


def test_vfork_markers():
    classifier, _ = make_classifier()
    assert classifier.classify('100 vfork( <unfinished ...>') == VforkUnfinished(100)
    assert classifier.classify('100 <... vfork resumed>) = 101') == VforkResumed(100, 101)


def test_spawn_and_exit():
    classifier, _ = make_classifier()
    line = '100 clone(child_stack=NULL, flags=CLONE_CHILD_CLEARTID|CLONE_CHILD_SETTID|SIGCHLD, child_tidptr=0x7f0e) = 105'
    assert classifier.classify(line) == ProcessSpawn(100, 105)
    assert classifier.classify('100 <... clone3 resumed> => {parent_tid=[106]}, 88) = 106') == ProcessSpawn(100, 106)
    assert classifier.classify('100 vfork() = 107') == ProcessSpawn(100, 107)
    assert classifier.classify('105 +++ exited with 0 +++') == ProcessExit(105)


def test_irrelevant_lines():
    classifier, _ = make_classifier()
    assert classifier.classify('100 read(3, "\\177ELF", 832) = 832') is None
    assert classifier.classify('garbage') is None
    assert classifier.classify('') is None


def test_helpers():
    assert decode_xstr('plain') == 'plain'
    assert decode_xstr(r'a\"b') == 'a"b'
    assert is_header('x.hpp')
    assert not is_header('x.c')


def test_split_openat_is_classified_on_resume():
    classifier, _ = make_classifier()
    assert classifier.classify('100 openat(AT_FDCWD, "/proj/a.h", O_RDONLY|O_NOCTTY <unfinished ...>') is None
    assert classifier.classify('101 read(3, "", 4096) = 0') is None
    event = classifier.classify('100 <... openat resumed>) = 3')
    assert event == FileOpen(100, '/proj/a.h', None, 'O_RDONLY|O_NOCTTY')


def test_split_failed_openat_is_discarded():
    classifier, _ = make_classifier()
    assert classifier.classify('100 openat(AT_FDCWD, "/usr/local/include/a.h", O_RDONLY|O_NOCTTY <unfinished ...>') is None
    assert classifier.classify('100 <... openat resumed>) = -1 ENOENT (No such file or directory)') is None


def test_split_execve():
    classifier, _ = make_classifier()
    head = '101 execve("/usr/local/bin/gcc", ["gcc", "-o", "a", "a.c"], 0x7ffd /* 24 vars */ <unfinished ...>'
    assert classifier.classify(head) is None
    assert classifier.classify('101 <... execve resumed>) = -1 ENOENT (No such file or directory)') is None

    head = '101 execve("/usr/bin/gcc", ["gcc", "-o", "a", "a.c"], 0x7ffd /* 24 vars */ <unfinished ...>'
    assert classifier.classify(head) is None
    event = classifier.classify('101 <... execve resumed>) = 0')
    assert isinstance(event, InvocationStart)
    assert event.raw_args.startswith('/usr/bin/gcc", ["gcc", "-o", "a", "a.c"]')


def test_resume_without_unfinished_call():
    classifier, _ = make_classifier()
    assert classifier.classify('100 <... openat resumed>) = 3') is None
    assert classifier.classify('100 chdir("/proj/src" <unfinished ...>') is None
    # a resume of another call does not complete it
    assert classifier.classify('100 <... openat resumed>) = 3') is None
    assert classifier.classify('100 <... chdir resumed>) = 0') == DirChange(100, '/proj/src')


def test_split_call_of_killed_process_is_dropped():
    classifier, _ = make_classifier()
    classifier.classify('100 chdir("/proj/src" <unfinished ...>')
    assert classifier.classify('100 +++ killed by SIGKILL +++') == ProcessExit(100)
    assert classifier.classify('100 <... chdir resumed>) = 0') is None


def test_non_ascii_path_is_decoded_as_utf8():
    assert decode_xstr(r'/proj/caf\303\251.h') == '/proj/café.h'
    classifier, _ = make_classifier()
    event = classifier.classify(r'300 openat(AT_FDCWD, "/proj/caf\303\251.h", O_RDONLY) = 3')
    assert event.raw_path == '/proj/café.h'
    # bytes which are not UTF-8 survive as surrogates
    assert decode_xstr(r'\377.h') == '\udcff.h'
