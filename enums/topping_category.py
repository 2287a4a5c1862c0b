from enum import Enum


class ToppingCategory(str, Enum):
    VEGETABLES = "vegetables"
    MEAT = "meat"
    CHEESE = "cheese"
    SAUCE = "sauce"
