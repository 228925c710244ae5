"""
Rules package.

Defines the statement model and the decision engine used by the
Authorization Service. Statements bind one resource, one effect and one
action; the engine resolves them with default-deny and deny-overrides
semantics and reports a reason for observability.

Modules of interest:
- models: Capability matchers, statements, policies, roles and results.
- engine: Decision algorithm walking roles, policies and statements.
"""
