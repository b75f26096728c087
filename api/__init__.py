"""gRPC surface: message shapes, servicer, interceptors and server host."""
