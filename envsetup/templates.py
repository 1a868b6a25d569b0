"""
File contents written by the scaffold engine.

Secret-bearing templates use ``string.Template`` placeholders (``${NAME}``);
everything else is written verbatim.
"""

from __future__ import annotations

import string

PLACEHOLDER_MARKER = "CHANGE_ME"

_SHARED_SETTINGS = """\
# Kafka Configuration
KAFKA_BOOTSTRAP_SERVERS=localhost:9092

# Service Ports
CONFIG_SERVER_PORT=8888
DISCOVERY_SERVER_PORT=8761
GATEWAY_PORT=8080
TRANSACTION_SERVICE_PORT=8081
BANKING_SERVICE_PORT=8082
FRAUD_SERVICE_PORT=8083
EXCHANGE_SERVICE_PORT=8084
AUDIT_SERVICE_PORT=8085
"""

_FLAGS = """\
# Environment
ENVIRONMENT=development

# Feature Flags
ENABLE_DEBUG=false
ENABLE_METRICS=true
ENABLE_TRACING=true
"""

ENV_EXAMPLE = f"""\
# .env.example - Template for environment variables (SAFE TO COMMIT)
# Copy this file to .env and replace all {PLACEHOLDER_MARKER} values with secure passwords

# Database Configuration
DB_HOST=localhost
DB_PORT=5432
DB_USER=moneyplatform
DB_PASSWORD={PLACEHOLDER_MARKER}_USE_STRONG_PASSWORD

# Redis Configuration
REDIS_HOST=localhost
REDIS_PORT=6379
REDIS_PASSWORD={PLACEHOLDER_MARKER}_USE_STRONG_PASSWORD

{_SHARED_SETTINGS}
# JWT Secret (64 random bytes, base64)
JWT_SECRET={PLACEHOLDER_MARKER}_GENERATE_MINIMUM_256_BITS

# Config Server Encryption Key
CONFIG_SERVER_ENCRYPT_KEY={PLACEHOLDER_MARKER}_USE_STRONG_PASSWORD

# Grafana Admin Password
GRAFANA_ADMIN_PASSWORD={PLACEHOLDER_MARKER}_USE_STRONG_PASSWORD

{_FLAGS}"""

ENV_FILE = string.Template(f"""\
# .env - Environment variables with generated passwords
# This file is git-ignored and should NEVER be committed

# Database Configuration
DB_HOST=localhost
DB_PORT=5432
DB_USER=moneyplatform
DB_PASSWORD=${{DB_PASSWORD}}

# Redis Configuration
REDIS_HOST=localhost
REDIS_PORT=6379
REDIS_PASSWORD=${{REDIS_PASSWORD}}

{_SHARED_SETTINGS}
# JWT Secret (Base64 encoded, min 256 bits)
JWT_SECRET=${{JWT_SECRET}}

# Config Server Encryption Key
CONFIG_SERVER_ENCRYPT_KEY=${{CONFIG_SERVER_ENCRYPT_KEY}}

# Grafana Admin Password
GRAFANA_ADMIN_PASSWORD=${{GRAFANA_ADMIN_PASSWORD}}

{_FLAGS}""")

CREDENTIALS_FILE = string.Template("""\
# .credentials.txt - First-time passwords (git-ignored, delete once stored safely)

Database Password: ${DB_PASSWORD}
Redis Password: ${REDIS_PASSWORD}
Grafana Admin Password: ${GRAFANA_ADMIN_PASSWORD}
""")

GITIGNORE = """\
# Security - NEVER commit these
.env
.env.local
.env.*.local
*.env
!.env.example
.credentials.txt
.credentials.backup
secrets/
*.key
*.pem
*.p12
*.jks

# Gradle
.gradle/
build/
!gradle/wrapper/gradle-wrapper.jar

# IDE
.idea/
*.iws
*.iml
*.ipr
out/
.vscode/
.project
.classpath
.settings/
bin/

# OS
.DS_Store
Thumbs.db

# Logs and temp files
*.log
logs/
target/
*.tmp
*.temp
*.swp

# Docker
docker/volumes/

# Node
node_modules/

# Testing
test-results/
coverage/
"""

SERVICE_DATABASES = ("transactions", "banking", "fraud", "exchange", "audit", "config_server")
DATABASE_OWNER = "moneyplatform"

INIT_DATABASES_SQL = (
    "-- Create databases for each service\n"
    + "".join(f"CREATE DATABASE {db};\n" for db in SERVICE_DATABASES)
    + "\n-- Grant privileges\n"
    + "".join(f"GRANT ALL PRIVILEGES ON DATABASE {db} TO {DATABASE_OWNER};\n" for db in SERVICE_DATABASES)
)

COMPOSE_FILE = "infrastructure/docker/docker-compose.yml"

MAKEFILE = f"""\
# Makefile for Money Transfer Platform
# Convenient shortcuts for common commands

.PHONY: help
help: ## Show this help message
\t@echo 'Available Commands'
\t@echo '=================='
\t@echo ''
\t@echo 'Initial Setup:'
\t@echo '  make install-tools   - Install missing dependencies'
\t@echo '  make setup          - Run complete project setup'
\t@echo '  make verify         - Verify environment'
\t@echo ''
\t@echo 'Infrastructure:'
\t@echo '  make infra-up       - Start all services'
\t@echo '  make infra-down     - Stop all services'
\t@echo '  make infra-status   - Check service status'
\t@echo '  make infra-logs     - View service logs'
\t@echo ''
\t@echo 'Cleanup:'
\t@echo '  make clean-all      - Complete cleanup (DESTRUCTIVE)'

.PHONY: install-tools
install-tools: ## Install missing dependencies
\t@envsetup install

.PHONY: setup
setup: ## Run complete setup
\t@envsetup setup

.PHONY: verify
verify: ## Verify environment
\t@envsetup verify

.PHONY: infra-up
infra-up: ## Start all services
\t@envsetup infra up

.PHONY: infra-down
infra-down: ## Stop all services
\t@envsetup infra down

.PHONY: infra-status
infra-status: ## Check status
\t@envsetup infra status

.PHONY: infra-logs
infra-logs: ## View logs
\t@docker compose --env-file .env -f {COMPOSE_FILE} logs -f

.PHONY: clean-all
clean-all: ## Clean everything
\t@envsetup cleanup
"""

SERVICE_MODULES = (
    "config-server",
    "discovery-service",
    "gateway-service",
    "transaction-orchestrator-service",
    "banking-partner-service",
    "fraud-detection-service",
    "currency-exchange-service",
    "audit-compliance-service",
    "shared-libraries:common-dto",
    "shared-libraries:security-utils",
    "shared-libraries:messaging-contracts",
)

SETTINGS_GRADLE = (
    'rootProject.name = "money-transfer-platform"\n\n'
    + "".join(f'include("{module}")\n' for module in SERVICE_MODULES)
)

BUILD_GRADLE = """\
plugins {
    id("java")
    id("org.springframework.boot") version "3.3.0" apply false
    id("io.spring.dependency-management") version "1.1.5" apply false
}

group = "com.moneytransfer"
version = "1.0.0-SNAPSHOT"

java {
    sourceCompatibility = JavaVersion.VERSION_21
    targetCompatibility = JavaVersion.VERSION_21
}

allprojects {
    repositories {
        mavenCentral()
        maven { url = uri("https://repo.spring.io/milestone") }
    }
}

subprojects {
    apply(plugin = "java")
    apply(plugin = "io.spring.dependency-management")

    java {
        sourceCompatibility = JavaVersion.VERSION_21
        targetCompatibility = JavaVersion.VERSION_21
    }
}
"""
