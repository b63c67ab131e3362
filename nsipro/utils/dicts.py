"""Dictionary helpers for parsed ``.nsipro`` trees."""

from typing import Any, Dict

from benedict import benedict


def get_nested_dict_value_by_path(nest_dict, path):
    """
    Follow a sequence of keys into a nested dictionary.

    Parameters
    ----------
    nest_dict : dict
        The tree to walk
    path : tuple
        Keys to follow, outermost first

    Returns
    -------
    value : object or None
        The value at the end of ``path``, or None if the path stops early
    """
    # NSIPRO tag names may contain periods, so benedict must not split keys
    return benedict(nest_dict, keypath_separator=None).get(list(path))


def try_getting_dict_value(dict_, key):
    """
    Get a value from a (possibly nested) dictionary, or None.

    Parameters
    ----------
    dict_ : dict
        The dictionary to query; any other type gives None
    key : str or tuple
        A single key, or a sequence of keys leading into nested dictionaries

    Returns
    -------
    val : object or None
        The value found, or None if ``dict_`` has no such key or path
    """
    if not isinstance(dict_, dict):
        return None
    try:
        if isinstance(key, str):
            return dict_[key]
        if hasattr(key, "__iter__"):
            return get_nested_dict_value_by_path(dict_, key)
    except (KeyError, TypeError, IndexError, ValueError):
        return None
    else:
        return None  # pragma: no cover


def flatten_dict(nest_dict: Dict[str, Any], separator: str = ".") -> Dict[str, Any]:
    """
    Flatten a nested dictionary into a single level.

    Nested keys are joined with ``separator``; values that are not
    dictionaries (including lists) are kept as they are.

    Parameters
    ----------
    nest_dict
        The dictionary to flatten
    separator
        String placed between the keys of each level

    Returns
    -------
    dict
        A new, single-level dictionary
    """
    return dict(benedict(nest_dict, keypath_separator=None).flatten(separator=separator))
