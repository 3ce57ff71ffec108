# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Process-wide configuration, read from the environment (and a local .env file).

Field names are upper case so that call sites read like constants, e.g.
``settings.MAX_ITERATIONS``; each field is bound to its environment variable
through an alias.
"""

import os
import logging

from pathlib import Path
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # LLM provider
    LLM_PROVIDER: str = Field("anthropic", alias="WEAVER_LLM_PROVIDER")
    LLM_API_KEY: str = Field(
        "",
        validation_alias=AliasChoices("WEAVER_LLM_API_KEY", "ANTHROPIC_API_KEY", "LLM_API_KEY"),
    )
    LLM_MODEL: str = Field("claude-sonnet-4-20250514", alias="WEAVER_LLM_MODEL")
    LLM_MAX_TOKENS: int = Field(4096, alias="WEAVER_LLM_MAX_TOKENS")
    LLM_BASE_URL: str = Field("https://api.anthropic.com", alias="WEAVER_LLM_BASE_URL")
    LLM_TIMEOUT: float = Field(120.0, alias="WEAVER_LLM_TIMEOUT")

    # Jira
    JIRA_BASE_URL: str = Field("", alias="JIRA_BASE_URL")
    JIRA_EMAIL: str = Field("", alias="JIRA_EMAIL")
    JIRA_API_TOKEN: str = Field("", alias="JIRA_API_TOKEN")
    JIRA_PROJECT_KEY: str = Field("", alias="JIRA_PROJECT_KEY")

    # Confluence
    CONFLUENCE_BASE_URL: str = Field("", alias="CONFLUENCE_BASE_URL")
    CONFLUENCE_EMAIL: str = Field("", alias="CONFLUENCE_EMAIL")
    CONFLUENCE_API_TOKEN: str = Field("", alias="CONFLUENCE_API_TOKEN")
    CONFLUENCE_SPACE_KEY: str = Field("", alias="CONFLUENCE_SPACE_KEY")

    # Bitbucket
    BITBUCKET_BASE_URL: str = Field("https://api.bitbucket.org/2.0", alias="BITBUCKET_BASE_URL")
    BITBUCKET_USERNAME: str = Field("", alias="BITBUCKET_USERNAME")
    BITBUCKET_APP_PASSWORD: str = Field("", alias="BITBUCKET_APP_PASSWORD")
    BITBUCKET_WORKSPACE: str = Field("", alias="BITBUCKET_WORKSPACE")
    BITBUCKET_REPO_SLUG: str = Field("", alias="BITBUCKET_REPO_SLUG")

    # Local repository and long-term memory
    REPO_PATH: str = Field(default_factory=os.getcwd, alias="WEAVER_REPO_PATH")
    SKILLS_DIR: str = Field(".weaver/skills", alias="WEAVER_SKILLS_DIR")
    PROVIDERS_FILE: str = Field("mcp-servers.json", alias="WEAVER_PROVIDERS_FILE")

    # Agent loop and transport
    MAX_ITERATIONS: int = Field(25, alias="WEAVER_MAX_ITERATIONS")
    RPC_TIMEOUT: float = Field(30.0, alias="WEAVER_RPC_TIMEOUT")

    VERBOSE: bool = Field(False, alias="WEAVER_VERBOSE")
    LOG_LEVEL: str = Field("INFO", alias="WEAVER_LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @property
    def repo_root(self) -> Path:
        return Path(self.REPO_PATH).expanduser().resolve()

    @property
    def skills_root(self) -> Path:
        skills = Path(self.SKILLS_DIR).expanduser()
        return skills if skills.is_absolute() else self.repo_root / skills

    @property
    def log_level(self) -> int:
        if self.VERBOSE:
            return logging.DEBUG
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO


settings = Settings()
