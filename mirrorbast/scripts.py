"""
Remote expressions evaluated inside a session.

Each builder returns a single bounded expression. Dynamic values are embedded
with `json.dumps`, never by raw string interpolation, so deck links and button
labels containing quotes cannot break the script.
"""

from __future__ import annotations

import json
from typing import Any

# Shared snippet: React-style controlled inputs ignore plain `.value =` writes,
# so go through the native setter and fire input/change.
_SET_INPUT_VALUE = """
const setValue = (input, value) => {
  const setter = Object.getOwnPropertyDescriptor(window.HTMLInputElement.prototype, 'value').set;
  setter.call(input, value);
  input.dispatchEvent(new Event('input', { bubbles: true }));
  input.dispatchEvent(new Event('change', { bubbles: true }));
};
""".strip()

_FIND_AND_CLICK = """
(async () => {
  const wanted = __WANTED__;
  const elements = Array.from(document.querySelectorAll(__SELECTOR__));
  const target = elements.find(el =>
    (el.textContent || '').trim().toLowerCase() === wanted &&
    el.offsetParent !== null &&
    !el.disabled
  );
  if (!target) {
    return false;
  }
  target.scrollIntoView({ behavior: 'smooth', block: 'center', inline: 'center' });
  await new Promise(r => setTimeout(r, __SETTLE_MS__));
  target.click();
  return true;
})()
"""

_SELECT_RADIO = """
(() => {
  const radio = Array.from(document.querySelectorAll('input[type=radio]'))
    .find(r => r.value === __VALUE__);
  if (!radio) {
    return false;
  }
  radio.click();
  return true;
})()
"""

_FILL_EMPTY_TEXT_INPUT = """
(() => {
  __SET_INPUT_VALUE__
  const input = Array.from(document.querySelectorAll('input[type=text]')).find(el =>
    el.offsetParent !== null && !el.readOnly && !el.disabled && !el.value
  );
  if (!input) {
    return false;
  }
  setValue(input, __VALUE__);
  return true;
})()
"""

_INPUT_VALUE_CONTAINING = """
(() => {
  const input = Array.from(document.querySelectorAll('input[type=text]'))
    .find(el => (el.value || '').includes(__FRAGMENT__));
  return input ? input.value : null;
})()
"""

# Inputs without a placeholder: the import dialog's link field has none, while
# the lobby chat and search boxes do.
_UNLABELLED_INPUT_FILTER = """
const unlabelledInputs = () => Array.from(document.querySelectorAll('input[type=text]')).filter(el =>
  el.offsetParent !== null && !el.readOnly && !el.disabled && !el.placeholder && !el.value
);
""".strip()

_HAS_EMPTY_UNLABELLED_INPUT = """
(() => {
  __UNLABELLED__
  return unlabelledInputs().length > 0;
})()
"""

_FILL_EMPTY_UNLABELLED_INPUT = """
(() => {
  __SET_INPUT_VALUE__
  __UNLABELLED__
  const input = unlabelledInputs()[0];
  if (!input) {
    return false;
  }
  setValue(input, __VALUE__);
  return true;
})()
"""


def _render(template: str, **values: Any) -> str:
    out = template.replace("__SET_INPUT_VALUE__", _SET_INPUT_VALUE)
    out = out.replace("__UNLABELLED__", _UNLABELLED_INPUT_FILTER)
    for key, value in values.items():
        out = out.replace(f"__{key.upper()}__", json.dumps(value))
    return out.strip()


def find_and_click(selector: str, match_text: str, *, settle_ms: int = 150) -> str:
    """Click the first visible, enabled element whose trimmed text matches (case-insensitive)."""
    return _render(
        _FIND_AND_CLICK,
        wanted=match_text.strip().lower(),
        selector=selector,
        settle_ms=int(settle_ms),
    )


def select_radio(value: str) -> str:
    return _render(_SELECT_RADIO, value=value)


def fill_empty_text_input(value: str) -> str:
    return _render(_FILL_EMPTY_TEXT_INPUT, value=value)


def find_input_value_containing(fragment: str) -> str:
    return _render(_INPUT_VALUE_CONTAINING, fragment=fragment)


def has_empty_unlabelled_input() -> str:
    return _render(_HAS_EMPTY_UNLABELLED_INPUT)


def fill_empty_unlabelled_input(value: str) -> str:
    return _render(_FILL_EMPTY_UNLABELLED_INPUT, value=value)
