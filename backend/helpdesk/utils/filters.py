from __future__ import annotations
from typing import Any, Dict, List
from helpdesk.errors import ValidationError

def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]):
    """Generic filter builder.

    specs: { param_name: { 'op': callable(query, value)->query, 'coerce': type/func, 'validate': callable(optional) } }

    Every invalid parameter is reported together in a single ValidationError.
    """
    errors: List[str] = []
    for name, meta in specs.items():
        if name not in params or params[name] in (None, ''):
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError):
                errors.append(f'{name} invalid')
                continue
        if 'validate' in meta and not meta['validate'](val):
            errors.append(f'{name} invalid')
            continue
        query = meta['op'](query, val)
    if errors:
        raise ValidationError(errors)
    return query
