from textwrap import dedent

MODULE_DOCSTRING_TEMPLATE = dedent(
    '''
    """{{ title }}

    Generated by: {{ generator }}
    wireplan version used for generation: {{ version }}

    Do not edit by hand; rerun ``wireplan generate`` instead.
    """
    ''',
).strip()

TOKENS_MODULE_TEMPLATE = dedent(
    """
    {{ docstring_block }}

    from __future__ import annotations

    from typing import {{ typing_names }}
    {% if uses_component %}

    from {{ runtime }} import Component
    {% endif %}
    {% if imports_block %}

    {{ imports_block }}
    {% endif %}

    {{ aliases_block }}

    TOKEN_METADATA: dict[Any, dict[str, tuple[Any, ...]]] = {
    {% for entry in metadata_entries %}
        {{ entry }},
    {% endfor %}
    }
    """,
).strip()

FACTORIES_MODULE_TEMPLATE = dedent(
    """
    {{ docstring_block }}

    from __future__ import annotations

    from typing import Any
    {% if imports_block %}

    {{ imports_block }}
    {% endif %}

    FACTORIES: dict[str, dict[str, Any]] = {
    {% for entry in entries %}
        "{{ entry.name }}": {
            "factory": {{ entry.reference }},
            "provides": {{ entry.target }},
            "deps": ({{ entry.deps }}),
            "lifecycle": "{{ entry.lifecycle }}",
            "module": "{{ entry.module }}",
            "implements": ({{ entry.implements }}),
            "generics": ({{ entry.generics }}),
        },
    {% endfor %}
    }
    """,
).strip()

CONTAINER_MODULE_TEMPLATE = dedent(
    """
    {{ docstring_block }}

    from __future__ import annotations

    from {{ runtime }} import {{ runtime_names }}
    {% if imports_block %}

    {{ imports_block }}
    {% endif %}


    def {{ function_name }}(container: Container | None = None) -> Container:
        \"\"\"Register the ``{{ module_name }}`` module bindings on ``container``.\"\"\"
        container = container if container is not None else Container()
    {% for registration in registrations %}
        {{ registration }}
    {% endfor %}
        return container
    {% for alias in aliases %}


    def {{ alias.function_name }}(instance: {{ alias.source }}) -> {{ alias.target }}:
        return instance
    {% endfor %}
    """,
).strip()

REGISTRATION_TEMPLATE = dedent(
    """
    container.{{ method }}({{ provider }}, provides={{ target }}, lifetime=Lifetime.{{ lifetime }}{% if scope %}, scope=Scope.{{ scope }}{% endif %})
    """,
).strip()

CONTAINERS_PACKAGE_TEMPLATE = dedent(
    """
    {{ docstring_block }}

    from __future__ import annotations

    from {{ runtime }} import Container
    {% for module in modules %}
    from {{ package }}.{{ module.file_stem }} import {{ module.function_name }}
    {% endfor %}


    def build_container(container: Container | None = None) -> Container:
        \"\"\"Register the bindings of every module on ``container``.\"\"\"
        container = container if container is not None else Container()
    {% for module in modules %}
        {{ module.function_name }}(container)
    {% endfor %}
        return container


    __all__ = [
        "build_container",
    {% for module in modules %}
        "{{ module.function_name }}",
    {% endfor %}
    ]
    """,
).strip()

PACKAGE_INIT_TEMPLATE = dedent(
    '''
    """Generated dependency-injection wiring."""
    ''',
).strip()
