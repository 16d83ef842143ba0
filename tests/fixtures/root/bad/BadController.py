from aerie import Controller


class BadController(Controller):

    def is_request_ok(self, exchange):
        return False
