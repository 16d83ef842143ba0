from aerie import ResourceApi


class ParameterApi(ResourceApi):
    path_config = ["first", "second"]

    def do_get(self, exchange, *args):
        return exchange.request.params
