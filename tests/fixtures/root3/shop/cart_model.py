from aerie import Model


class CartModel(Model):
    config = {"currency": "EUR"}

    def __init__(self, exchange=None):
        super().__init__(exchange)
        self.items = ["apple", "pear"]
