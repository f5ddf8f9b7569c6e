"""
Core - Cross-cutting helpers for TalentFlow

- logging: tenant and event ids on every log record
- security: outbound URL (SSRF) protection
"""
