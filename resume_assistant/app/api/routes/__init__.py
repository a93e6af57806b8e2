"""FastAPI routers for the agent, chat, scoring, design and history endpoints."""
