"""
參數讀取 (Parameter Source)

以扁平的鍵值對應表表示物種宣告，例如::

    {
        "genome-size": 10,
        "min-gene": -5.0,
        "segment.0.start": 0,
        "mutation-type.3": "gauss",
    }

ParameterSource 提供型別轉換與完整參數路徑，讓錯誤訊息能指出出錯的參數。
值可以是原生 Python 型別，也可以是參數檔中讀到的字串。
"""

from typing import Any, Dict, Mapping, Optional

from .exceptions import InvalidParameterError, MissingParameterError

DEFAULT_BASE = "vector.species"

_MISSING = object()

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})


def join_key(*parts: Any) -> str:
    """以 '.' 串接參數鍵，忽略空字串"""
    return ".".join(str(part) for part in parts if str(part) != "")


class ParameterSource:
    """具備型別轉換的參數來源

    Attributes:
        declarations: 原始宣告（相對於 base 的鍵）
        base: 參數路徑前綴，僅用於錯誤訊息
    """

    def __init__(self, declarations: Optional[Mapping[str, Any]] = None,
                 base: str = DEFAULT_BASE):
        self.declarations: Dict[str, Any] = dict(declarations or {})
        self.base = base

    def path(self, key: str) -> str:
        """取得參數的完整路徑"""
        return join_key(self.base, key)

    def exists(self, key: str) -> bool:
        return key in self.declarations and self.declarations[key] is not None

    def _raw(self, key: str, default: Any) -> Any:
        if self.exists(key):
            return self.declarations[key]
        if default is _MISSING:
            raise MissingParameterError(self.path(key))
        return default

    def get_string(self, key: str, default: Any = _MISSING) -> Optional[str]:
        """讀取字串參數

        Raises:
            MissingParameterError: 參數不存在且未提供預設值
        """
        value = self._raw(key, default)
        if value is None:
            return None
        return str(value).strip()

    def get_int(self, key: str, default: Any = _MISSING) -> Optional[int]:
        """讀取整數參數

        接受 int、整數值的 float，以及可解析為整數的字串。

        Raises:
            MissingParameterError: 參數不存在且未提供預設值
            InvalidParameterError: 值不是整數
        """
        if not self.exists(key):
            return self._raw(key, default)
        value = self.declarations[key]
        if isinstance(value, bool):
            raise InvalidParameterError(self.path(key), value, "an integer")
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise InvalidParameterError(self.path(key), value, "an integer")
        try:
            return int(str(value).strip())
        except ValueError:
            raise InvalidParameterError(self.path(key), value, "an integer")

    def get_float(self, key: str, default: Any = _MISSING) -> Optional[float]:
        """讀取浮點數參數

        Raises:
            MissingParameterError: 參數不存在且未提供預設值
            InvalidParameterError: 值不是數字
        """
        if not self.exists(key):
            return self._raw(key, default)
        value = self.declarations[key]
        if isinstance(value, bool):
            raise InvalidParameterError(self.path(key), value, "a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise InvalidParameterError(self.path(key), value, "a number")

    def get_bool(self, key: str, default: Any = _MISSING) -> Optional[bool]:
        """讀取布林參數

        Raises:
            MissingParameterError: 參數不存在且未提供預設值
            InvalidParameterError: 值無法解讀為布林值
        """
        if not self.exists(key):
            return self._raw(key, default)
        value = self.declarations[key]
        if isinstance(value, bool):
            return value
        word = str(value).strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise InvalidParameterError(self.path(key), value, "true or false")

    def get_object(self, key: str, default: Any = _MISSING) -> Any:
        """讀取未轉換的原始值（例如基因原型物件）"""
        return self._raw(key, default)
