from typing import Any, Dict, List

from notchwatch.adapters.macos.accessibility import AccessibilityTree
from notchwatch.adapters.probes import AccessibilityTextProbe
from notchwatch.core.probe import CancelScope, bind_scope
from notchwatch.core.reading import ReadingState


def _element(role: str, children: List[Dict[str, Any]] = (), **attrs: Any) -> Dict[str, Any]:
    element = {"AXRole": role, "AXChildren": list(children)}
    element.update(attrs)
    return element


def _get(element: Dict[str, Any], name: str) -> Any:
    return element.get(name)


def _app(*windows: Dict[str, Any]) -> Dict[str, Any]:
    return {"AXWindows": list(windows)}


def _xcode_app(status: str = "Build Succeeded") -> Dict[str, Any]:
    toolbar = _element("AXToolbar", [_element("AXStaticText", AXValue=status)])
    editor = _element("AXTextArea", [_element("AXStaticText", AXValue="Compiling hidden.swift")])
    return _app(_element("AXWindow", [toolbar, editor], AXTitle="MyApp.xcodeproj"))


def test_iter_texts_walks_windows_depth_first() -> None:
    tree = AccessibilityTree(_xcode_app("Compiling 3 of 10"), get_attribute=_get)

    texts = list(tree.iter_texts())

    assert texts[0] == ("AXWindow", "MyApp.xcodeproj")
    assert ("AXStaticText", "Compiling 3 of 10") in texts


def test_iter_texts_only_expands_container_roles() -> None:
    tree = AccessibilityTree(_xcode_app(), get_attribute=_get)

    # AXTextArea 不是容器，其子元素不会被遍历
    assert "Compiling hidden.swift" not in [text for _, text in tree.iter_texts()]


def test_iter_texts_filters_roles_and_respects_depth() -> None:
    tree = AccessibilityTree(_xcode_app(), get_attribute=_get)
    assert [text for _, text in tree.iter_texts(roles=["AXStaticText"])] == ["Build Succeeded"]

    shallow = AccessibilityTree(_xcode_app(), get_attribute=_get, max_depth=1)
    assert [text for _, text in shallow.iter_texts(roles=["AXStaticText"])] == []


def test_iter_texts_stops_when_cancelled() -> None:
    scope = CancelScope()
    scope.cancel()
    bind_scope(scope)
    try:
        texts = list(AccessibilityTree(_xcode_app(), get_attribute=_get).iter_texts())
    finally:
        bind_scope(None)

    assert texts == []


def test_window_titles_and_subroles() -> None:
    app = _app(
        _element("AXWindow", AXTitle="Copying 3 items", AXSubrole="AXStandardWindow"),
        _element("AXWindow", AXTitle="", AXSubrole="AXDialog"),
    )
    tree = AccessibilityTree(app, get_attribute=_get)

    assert tree.window_titles() == ["Copying 3 items"]
    assert tree.has_window_subrole(["AXDialog"])
    assert not tree.has_window_subrole(["AXSystemDialog"])


def _ax_probe(app: Dict[str, Any], patterns, **kwargs) -> AccessibilityTextProbe:
    kwargs.setdefault("pid_lookup", lambda bundle: 42)
    kwargs.setdefault("trusted", lambda: True)
    return AccessibilityTextProbe(
        "com.apple.dt.Xcode",
        patterns,
        tree_factory=lambda pid: AccessibilityTree(app, get_attribute=_get),
        **kwargs,
    )


def test_probe_matches_text() -> None:
    reading = _ax_probe(_xcode_app("Compiling 3 of 10"), ["Compiling"], roles=["AXStaticText"]).sample(2.0)

    assert reading.state is ReadingState.ACTIVE
    assert reading.detail == "Compiling 3 of 10"


def test_probe_without_match_or_process() -> None:
    assert _ax_probe(_xcode_app(), ["Compiling"]).sample(2.0).detail == "no matching text"
    assert _ax_probe(_xcode_app(), ["Compiling"], pid_lookup=lambda bundle: None).sample(2.0).detail == "not running"
    untrusted = _ax_probe(_xcode_app(), ["Compiling"], trusted=lambda: False).sample(2.0)
    assert untrusted.detail == "accessibility not trusted"


def test_finder_dialog_is_not_progress() -> None:
    app = _app(
        _element("AXWindow", AXTitle="Copying 3 items", AXSubrole="AXStandardWindow"),
        _element("AXWindow", AXTitle="Replace?", AXSubrole="AXDialog"),
    )

    with_dialog = _ax_probe(app, ["Copying"], titles_only=True, dialog_subroles=["AXDialog"]).sample(2.0)
    titles = _ax_probe(app, ["Copying"], titles_only=True).sample(2.0)

    assert with_dialog.detail == "dialog open"
    assert titles.state is ReadingState.ACTIVE
