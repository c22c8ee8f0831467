from src.timeleave.timeleave.main import create_app

app = create_app()

if __name__ == '__main__':
    # The reloader would start a second auto clock-out scheduler.
    app.run(debug=app.config["DEBUG"], use_reloader=False)
