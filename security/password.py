import bcrypt

MIN_PIN_LENGTH = 4

def hash_pin(plain_pin: str) -> str:
    if not isinstance(plain_pin, str) or len(plain_pin.strip()) < MIN_PIN_LENGTH:
        raise ValueError(f"Security PIN must be at least {MIN_PIN_LENGTH} characters")

    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(plain_pin.strip().encode("utf-8"), salt).decode("utf-8")

def verify_pin(plain_pin: str, pin_hash: str) -> bool:
    if not plain_pin or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(plain_pin.strip().encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False
