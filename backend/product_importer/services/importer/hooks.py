"""
扩展点：按名字登记的变换函数，按注册顺序依次调用。
每个回调拿到当前值（及上下文参数），返回新值；返回 None 视为不修改。
"""
from __future__ import annotations
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List



PRODUCT_OBJECT = "product_object"                        # (product, row)
PRE_INSERT_PRODUCT_OBJECT = "pre_insert_product_object"  # (product, row)
PARSED_DATA = "parsed_data"                              # (parsed_rows, raw_rows)
FILE_DOWNLOAD_PATH = "file_download_path"                # (path, product, index)

HOOK_NAMES = (PRODUCT_OBJECT, PRE_INSERT_PRODUCT_OBJECT, PARSED_DATA, FILE_DOWNLOAD_PATH)


class ImportHooks:

    def __init__(self) -> None:
        self._callbacks: DefaultDict[str, List[Callable[..., Any]]] = defaultdict(list)

    def register(self, name: str, callback: Callable[..., Any]) -> Callable[..., Any]:
        if name not in HOOK_NAMES:
            raise ValueError(f"unknown hook {name!r}; expected one of {', '.join(HOOK_NAMES)}")
        self._callbacks[name].append(callback)
        return callback

    def on(self, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of `register`."""
        def _decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            return self.register(name, fn)
        return _decorator

    def apply(self, name: str, value: Any, *args: Any) -> Any:
        for cb in self._callbacks.get(name, ()):
            result = cb(value, *args)
            if result is not None:
                value = result
        return value
