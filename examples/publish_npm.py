from npm_publish import Config, run
from npm_publish.cli import configure_logging

# Example: publish the package in the current directory.
# Requirements:
# - package.json with a name and a version not yet in the registry.
# - npm on PATH and a token (or username/password) for the registry.

configure_logging("info", ci=True)

config = Config(
    token="<npm token>",
    registry="https://registry.npmjs.org",
    tag="beta",
    access="public",
    audit_level="high",
    dry_run=True,
)

if __name__ == '__main__':
    published = run(config)
    print(published)
