"""ViewModel package for dialog and list state.

Call context:
    ``goalvault.app`` presenters bind orchestrator hooks and use-case results
    to the view models in this package.

Dependencies:
    Modules here depend on domain types and formatting helpers only. I/O
    adapters and use-case orchestration remain outside.
"""
