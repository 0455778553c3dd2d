"""Luhn checksum for order numbers"""


def is_valid_luhn(number: str) -> bool:
    """
    Validate a digit string with the Luhn algorithm.

    Every second digit from the right is doubled (minus 9 when above 9)
    and the total must be divisible by 10. Empty or non-digit input is invalid.
    """
    if not number or not (number.isascii() and number.isdigit()):
        return False

    total = 0
    for position, char in enumerate(reversed(number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return total % 10 == 0
