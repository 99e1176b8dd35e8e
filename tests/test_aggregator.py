from notchwatch.core.aggregator import ActivityAggregator
from notchwatch.core.debounce import DebounceConfig
from notchwatch.core.identity import SourceIdentity
from notchwatch.core.probe import FunctionProbe
from notchwatch.core.reading import Reading
from notchwatch.core.runner import SourceRunner


class ScriptedProbe:
    def __init__(self) -> None:
        self.value = False

    def sample(self, timeout):
        return self.value


def _attach(aggregator: ActivityAggregator, identity: SourceIdentity, probe) -> SourceRunner:
    runner = SourceRunner(
        identity,
        DebounceConfig(required_to_activate=1, required_to_deactivate=1),
        probe,
        timeout=None,
        on_transition=aggregator.handle_transition,
    )
    aggregator.attach(runner)
    return runner


def _sample(runner: SourceRunner) -> None:
    runner.poll().result(timeout=5.0)


def test_active_set_tracks_union_of_sources() -> None:
    aggregator = ActivityAggregator()
    xcode_probe, dropbox_probe = ScriptedProbe(), ScriptedProbe()
    xcode = _attach(aggregator, SourceIdentity.XCODE, xcode_probe)
    dropbox = _attach(aggregator, SourceIdentity.DROPBOX, dropbox_probe)

    xcode_probe.value = True
    _sample(xcode)
    assert aggregator.active_set == frozenset({SourceIdentity.XCODE})

    dropbox_probe.value = True
    _sample(dropbox)
    assert aggregator.active_set == frozenset({SourceIdentity.XCODE, SourceIdentity.DROPBOX})

    xcode_probe.value = False
    _sample(xcode)
    assert aggregator.active_set == frozenset({SourceIdentity.DROPBOX})

    xcode.close()
    dropbox.close()


def test_each_transition_triggers_exactly_one_recompute() -> None:
    aggregator = ActivityAggregator()
    probe = ScriptedProbe()
    runner = _attach(aggregator, SourceIdentity.CODEX, probe)

    probe.value = True
    _sample(runner)
    _sample(runner)
    _sample(runner)
    assert aggregator.recompute_count == 1

    probe.value = False
    _sample(runner)
    assert aggregator.recompute_count == 2
    runner.close()


def test_observers_only_notified_on_change() -> None:
    aggregator = ActivityAggregator()
    published = []
    aggregator.subscribe(published.append)

    aggregator.recompute()
    aggregator.recompute()

    # 订阅时回放一次当前集合，之后集合未变不再通知
    assert published == [frozenset()]


def test_unsubscribe_and_failing_observer() -> None:
    aggregator = ActivityAggregator()
    received = []

    def _broken(_active) -> None:
        raise RuntimeError("observer bug")

    aggregator.subscribe(_broken, replay=False)
    unsubscribe = aggregator.subscribe(received.append, replay=False)
    runner = _attach(aggregator, SourceIdentity.ICLOUD, FunctionProbe(lambda: True))

    _sample(runner)
    assert received == [frozenset({SourceIdentity.ICLOUD})]

    unsubscribe()
    runner.reset()
    assert received == [frozenset({SourceIdentity.ICLOUD})]
    assert aggregator.active_set == frozenset()
    runner.close()


def test_detach_removes_active_source() -> None:
    aggregator = ActivityAggregator()
    runner = _attach(aggregator, SourceIdentity.INSTALLER, FunctionProbe(lambda: True))
    _sample(runner)

    aggregator.detach(SourceIdentity.INSTALLER)

    assert aggregator.active_set == frozenset()
    assert aggregator.statuses() == []
    runner.close()


def test_reading_exposes_auxiliary_data() -> None:
    aggregator = ActivityAggregator()
    runner = _attach(
        aggregator,
        SourceIdentity.DAVINCI_RESOLVE,
        FunctionProbe(lambda: Reading.active("Rendering in Progress", progress=0.6)),
    )
    _sample(runner)

    reading = aggregator.reading(SourceIdentity.DAVINCI_RESOLVE)

    assert reading is not None and reading.progress == 0.6
    assert aggregator.reading(SourceIdentity.FINDER) is None
    runner.close()
