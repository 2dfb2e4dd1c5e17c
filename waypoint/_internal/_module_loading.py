from importlib import import_module
from typing import Any


def import_string(dotted_path: str) -> Any:
    """
    Import a dotted module path and return the attribute/class designated by the
    last name in the path. Raise ImportError if the import failed.
    """
    try:
        module_path, class_name = dotted_path.rsplit(".", 1)
    except ValueError as err:
        raise ImportError("%s doesn't look like a module path" % dotted_path) from err

    module = import_module(module_path)

    try:
        return getattr(module, class_name)
    except AttributeError as err:
        raise ImportError(
            'Module "{}" does not define a "{}" attribute/class'.format(module_path, class_name)
        ) from err


def looks_like_import_path(value: str) -> bool:
    """
    Whether a string is shaped like `package.module.Name`.
    """
    return "." in value and all(part.isidentifier() for part in value.split("."))


def object_path(obj: Any) -> str:
    """
    The dotted path an object can be imported from.
    """
    return f"{obj.__module__}.{obj.__qualname__}"
