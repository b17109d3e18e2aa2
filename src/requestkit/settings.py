"""
Settings for requestkit.

These settings are global and can be accessed from any module in the requestkit package.

They are read at call time, so an application may adjust them once at start-up
(before sending requests) and every builder created afterwards picks them up.

The SETTINGS dict structure follows the structure of requestkit submodules.

Expected usage behavior:

```python
from datetime import timedelta
from requestkit.settings import SETTINGS

SETTINGS.http.client.default_timeout = timedelta(seconds=30)
```
"""

from datetime import timedelta

SETTINGS = {
    'http': {
        'client': {
            # Timeout of the default client used when none is attached to the context
            'default_timeout': timedelta(minutes=1),
        },
    },
    'mime': {
        'json': "application/json",
        'xml': "application/xml",
    },
    'body': {
        # Encoded request bodies are handed to the transport in chunks of about this size
        'chunk_size': 8192,
        'json': {
            'separators': (",", ":"),
            'ensure_ascii': False,
        },
    },
}


class AttrDict(dict):
    """
    A dictionary subclass that allows dot-notation access while 
    recursively converting nested dictionaries.
    """
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Point the instance __dict__ to itself to allow attribute access
        self.__dict__ = self
        for key, value in self.items():
            self[key] = self._convert(value)

    @classmethod
    def _convert(cls, value):
        """Recursively converts dicts to AttrDicts, leaving other types alone."""
        if isinstance(value, dict) and not isinstance(value, AttrDict):
            return cls(value)
        return value

    def __setitem__(self, key, value):
        # Ensure that new items added via dict-syntax are also converted
        super().__setitem__(key, self._convert(value))

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError as exc:
            raise AttributeError(f"AttrDict object has no attribute '{key}'") from exc


SETTINGS = AttrDict(SETTINGS)
CLIENT_SETTINGS = SETTINGS.http.client
BODY_SETTINGS = SETTINGS.body
MIME = SETTINGS.mime
