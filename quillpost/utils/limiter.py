from slowapi import Limiter
from slowapi.util import get_remote_address

# Лимиты вешаются декораторами на конкретные endpoints (регистрация, логин)
limiter = Limiter(key_func=get_remote_address)
