# Overview: Notification bot that pushes upcoming service orders to the admin chat.
