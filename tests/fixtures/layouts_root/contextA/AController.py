from aerie import Controller


class AController(Controller):
    pass
