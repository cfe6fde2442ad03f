"""
Core domain.

Components:
- models.py: data structures (Conversation, Message, Step, Agent, ModelProvider, Task)
- ports.py: Protocols the execution loop depends on (ConversationRepo, ModelClient)
"""
