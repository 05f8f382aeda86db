class DiscountsError(Exception):
    pass


class InvalidRequestError(DiscountsError):
    pass


class DiscountNotFoundError(DiscountsError):
    pass


class AlreadyRedeemedError(DiscountsError):
    pass


class CooldownActiveError(DiscountsError):
    pass
