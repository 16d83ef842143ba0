from aerie import ResourceApi


class SecondExpressApi(ResourceApi):

    def do_get(self, exchange):
        exchange.response.json({"success": True})
