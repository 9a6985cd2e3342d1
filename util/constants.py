class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    RECORDS = V1 + "/records"
    STORE = V1 + "/store"
