# prompt-studio/backend/prompt_studio/utils/diff.py
"""
기대 결과와 모델 출력의 줄 단위 비교

줄 정렬(LCS) 없이 같은 인덱스의 줄끼리만 비교합니다.
중간에 한 줄이 삽입되면 이후 모든 줄이 어긋난 것으로 계산되며,
이미 저장된 유사도 값과의 호환을 위해 이 동작을 유지합니다.
"""

from typing import Any, Dict, List, Optional

from prompt_studio.schemas.result import Diff, LineChange, LineModification


def compute_diff(expected: Optional[str], actual: Optional[str]) -> Optional[Diff]:
    """
    위치 기반 줄 비교 및 유사도 계산

    Args:
        expected: 기대 결과 텍스트
        actual: 모델 출력 텍스트

    Returns:
        Optional[Diff]: 비교 결과 (둘 중 하나라도 비어 있으면 None)
    """
    if not expected or not actual:
        return None

    expected_lines = expected.split("\n")
    actual_lines = actual.split("\n")

    diff = Diff()
    max_length = max(len(expected_lines), len(actual_lines))
    matching_lines = 0

    for i in range(max_length):
        expected_line = expected_lines[i] if i < len(expected_lines) else None
        actual_line = actual_lines[i] if i < len(actual_lines) else None

        if expected_line == actual_line:
            matching_lines += 1
        elif not actual_line and expected_line:
            # 빈 줄도 "없음"으로 취급
            diff.removed.append(LineChange(line=i, content=expected_line))
        elif actual_line and not expected_line:
            diff.added.append(LineChange(line=i, content=actual_line))
        else:
            diff.modified.append(
                LineModification(line=i, expected=expected_line, actual=actual_line)
            )

    diff.similarity = (matching_lines / max_length) * 100 if max_length > 0 else 100.0

    return diff


def format_diff_for_display(diff: Optional[Diff]) -> List[Dict[str, Any]]:
    """
    비교 결과를 화면 표시용 줄 목록으로 변환

    수정된 줄은 삭제 줄과 추가 줄 한 쌍으로 펼쳐지며,
    줄 번호는 1부터 시작합니다.
    """
    if not diff:
        return []

    lines: List[Dict[str, Any]] = []

    for change in diff.removed:
        lines.append({
            "type": "removed",
            "line_number": change.line + 1,
            "content": f"- {change.content}"
        })

    for change in diff.added:
        lines.append({
            "type": "added",
            "line_number": change.line + 1,
            "content": f"+ {change.content}"
        })

    for change in diff.modified:
        lines.append({
            "type": "removed",
            "line_number": change.line + 1,
            "content": f"- {change.expected or ''}"
        })
        lines.append({
            "type": "added",
            "line_number": change.line + 1,
            "content": f"+ {change.actual or ''}"
        })

    # 안정 정렬이므로 수정 쌍의 삭제/추가 순서가 유지됨
    return sorted(lines, key=lambda item: item["line_number"])
