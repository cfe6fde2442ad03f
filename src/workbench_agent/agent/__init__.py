"""
Agent execution engine.

Components:
- parser.py: model reply -> Action (three-tier fallback)
- prompt.py: system prompt + transcript for one model call
- runner.py: AgentRunner execution loop and the run_conversation turn entry point
- dispatcher.py: single-worker-per-conversation turn queue
- service.py: delegation / reply / stop triggers used by front-ends
"""
