"""
Desired project state for the money-transfer platform workspace.
"""

from __future__ import annotations

from .scaffold import Directory, EnsureLine, GeneratedFile, SecretFile, TemplateFile
from .secrets import generate_key_material, generate_password
from . import templates

PROJECT_DIRECTORIES = (
    "infrastructure/docker",
    "infrastructure/docker/config",
    "infrastructure/docker/init-scripts",
    "infrastructure/docker/grafana/dashboards",
    "infrastructure/docker/grafana/datasources",
    "infrastructure/kubernetes/base",
    "infrastructure/kubernetes/overlays/dev",
    "infrastructure/kubernetes/overlays/staging",
    "infrastructure/kubernetes/overlays/prod",
    "infrastructure/terraform/modules",
    "infrastructure/terraform/environments",
    "config-server/src/main/resources/configurations",
    "shared-libraries/common-dto",
    "shared-libraries/security-utils",
    "shared-libraries/messaging-contracts",
    "monitoring/prometheus",
    "monitoring/grafana",
    "monitoring/elk-stack",
    "scripts/setup",
    "scripts/deployment",
    "scripts/testing",
    "docs/architecture",
    "docs/api-specs",
    "docs/runbooks",
    ".github/workflows",
    "gateway-service",
    "discovery-service",
    "transaction-orchestrator-service",
    "banking-partner-service",
    "fraud-detection-service",
    "currency-exchange-service",
    "audit-compliance-service",
)

ENV_FILE = ".env"
CREDENTIALS_FILE = ".credentials.txt"

ENV_SECRETS = (
    ("DB_PASSWORD", generate_password),
    ("REDIS_PASSWORD", generate_password),
    ("GRAFANA_ADMIN_PASSWORD", generate_password),
    ("JWT_SECRET", generate_key_material),
    ("CONFIG_SERVER_ENCRYPT_KEY", generate_password),
)

DESIRED_STATE = (
    *(Directory(path) for path in PROJECT_DIRECTORIES),
    TemplateFile(".env.example", templates.ENV_EXAMPLE),
    SecretFile(ENV_FILE, templates.ENV_FILE, ENV_SECRETS),
    TemplateFile(".gitignore", templates.GITIGNORE),
    EnsureLine(".gitignore", ENV_FILE),
    TemplateFile("infrastructure/docker/init-scripts/01-init-databases.sql", templates.INIT_DATABASES_SQL),
    TemplateFile("Makefile", templates.MAKEFILE),
    TemplateFile("settings.gradle.kts", templates.SETTINGS_GRADLE),
    TemplateFile("build.gradle.kts", templates.BUILD_GRADLE),
    GeneratedFile(CREDENTIALS_FILE, templates.CREDENTIALS_FILE),
)
