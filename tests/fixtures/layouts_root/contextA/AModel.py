from aerie import Model


class AModel(Model):

    def get_data(self):
        return {"message": "Hello from A"}
