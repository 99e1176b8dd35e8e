"""状态栏文字格式化（不依赖 rumps，便于测试）。"""

from __future__ import annotations

from typing import Iterable, List, Optional

from notchwatch.core.identity import SourceIdentity
from notchwatch.core.reading import Reading

IDLE_TITLE = "◦"


def ordered_active(active: Iterable[SourceIdentity]) -> List[SourceIdentity]:
    """活跃集合本身无序，显示时按来源声明顺序排列。"""

    active_set = set(active)
    return [identity for identity in SourceIdentity if identity in active_set]


def title_for(active: Iterable[SourceIdentity], max_names: int = 2) -> str:
    names = [identity.display_name for identity in ordered_active(active)]
    if not names:
        return IDLE_TITLE
    if len(names) > max_names:
        return f"● {', '.join(names[:max_names])} +{len(names) - max_names}"
    return f"● {', '.join(names)}"


def menu_label(identity: SourceIdentity, enabled: bool, is_active: bool, reading: Optional[Reading] = None) -> str:
    if not enabled:
        return f"{identity.display_name}：已停用"
    label = f"{identity.display_name}：{'进行中' if is_active else '空闲'}"
    if is_active and reading is not None and reading.progress is not None:
        label += f" {reading.progress:.0%}"
    return label
