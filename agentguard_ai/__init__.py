"""AgentGuard-AI.

This package contains a run-orchestration and authorization core for tool
using agents: every tool call an agent attempts passes through guardrails, a
policy-aware safety gate and, when required, a human approval step before it
executes.

High-level architecture
-----------------------

- **Capability snapshot**: a normalized, risk-scored description of an
  agent's tools (function, MCP, skill) that the safety gate reasons over.
- **Safety gate**: fail-closed authorization of a single tool call. An
  injected safety agent judges the call and the active policy profile
  (``strict``, ``balanced``, ``fast``) annotates the verdict.
- **Approval controller**: human approval requests and single-use, TTL-bound
  resume tokens.
- **Runner**: a LangGraph-based loop that drives explicit tool calls or a
  bounded model loop, suspends on ``needs_human`` and resumes from a token.

Core subpackages
----------------

- ``agentguard_ai.agent_core``: agents, tools, guardrails, policy, safety,
  approvals, providers and the runner.
- ``agentguard_ai.mcp_client``: an in-process gateway exposing hosted MCP
  servers as agent tools.
- ``agentguard_ai.core``: settings and logging setup.

Typical workflow
----------------

1. Build an ``Agent`` with tools and optional guardrails.
2. ``runner = create_runner(safety_agent=...)``.
3. ``result = await runner.run(agent, "...")``.
4. If ``result.interruptions`` is non-empty, submit an approval and call
   ``runner.resume_run(run_id, token)``.
"""
