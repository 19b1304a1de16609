from dynaconf import Dynaconf, Validator

settings = Dynaconf(
    settings_files=["settings.toml", ".secrets.toml"],
    environments=True,
    env_switcher="ENV_FOR_DYNACONF",
    envvar_prefix="BROADCASTBOT",
    load_dotenv=True,
    validators=[
        Validator("DOMAIN", must_exist=True),
        Validator("PRIVATE_KEY_PATH", "PUBLIC_KEY_PATH", must_exist=True),
        Validator("DATABASE_URL", must_exist=True),
        Validator("ACTOR_USERNAME", default="board"),
        Validator("ACTOR_NAME", default="Broadcast Bot"),
        Validator(
            "ACTOR_ICON",
            default="https://mastodon.social/avatars/original/missing.png",
        ),
        Validator(
            "ACTOR_SUMMARY",
            default="A broadcast bot that forwards mentions to all followers",
        ),
        Validator("DELIVERY_TIMEOUT", default=5.0, gt=0),
        Validator("DELIVERY_CONCURRENCY", default=8, gte=1),
        Validator("DELIVERY_MAX_ATTEMPTS", default=2, gte=1),
        Validator("DELIVERY_RETRY_BACKOFF", default=0.5, gte=0),
    ],
)
