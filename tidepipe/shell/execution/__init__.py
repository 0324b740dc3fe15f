"""Pipeline execution components.

- **parser**: pipeline string -> ``Pipeline`` of ``Invocation``
- **streams**: helpers for the async item streams between stages
- **engine**: stage-by-stage execution, halt detection, resume
- **token**: resume continuation <-> opaque token
- **mode**: run outcome -> tool-mode envelope or human output
- **help**: usage text rendering
"""
