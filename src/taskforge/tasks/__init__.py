"""
Task subsystem.

Components:
- task_models.py: data structures (TaskDefinition, Invocation, RunContext, FileGroup, ...)
- task_registry.py: named definitions + colon-argument resolution
- task_queue.py: invocation queue with placeholder/marker sentinels
- task_scheduler.py: drain loop, sync/async completion, success record
- task_manager.py: user-facing API (multi-tasks, init tasks, logging)
- multi_target.py / file_sets.py: per-target expansion and file-set normalization
- task_config.py / file_expander.py: default configuration and filesystem providers
"""
