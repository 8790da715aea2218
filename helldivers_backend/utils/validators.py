import re

# Nouveau format Discord: 2-32 caractères [a-z0-9_.], sans '..'
_DISCORD_USERNAME = re.compile(r'^[a-z0-9_.]{2,32}$')
# Ancien format: nom#1234
_DISCORD_LEGACY_TAG = re.compile(r'^[^#@:]{2,32}#\d{4}$')

def validate_discord_tag(v: str) -> str:
    v = (v or '').strip()
    if not v:
        raise ValueError('Discord username is required')
    if _DISCORD_LEGACY_TAG.match(v):
        return v
    lowered = v.lower()
    if not _DISCORD_USERNAME.match(lowered) or '..' in lowered:
        raise ValueError('Invalid Discord username')
    return lowered
